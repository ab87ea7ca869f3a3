from dataclasses import dataclass


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    role: str = "barber"
    is_active: bool = True

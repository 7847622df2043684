from typing import Optional

from .types import ShiftDay, ShiftTemplate


SHIFT_CATALOG: tuple[ShiftTemplate, ...] = (
    ShiftTemplate(ShiftDay.MONDAY.value, "Careggi", "09:30", "11:30"),
    ShiftTemplate(ShiftDay.THURSDAY.value, "Piazza Dalmazia", "10:00", "12:00"),
    ShiftTemplate(ShiftDay.FRIDAY.value, "Social Hub Belfiore", "15:30", "17:30"),
    # Saturday has two back-to-back slots at the same location
    ShiftTemplate(ShiftDay.SATURDAY.value, "Piazza Dalmazia", "09:00", "11:00"),
    ShiftTemplate(ShiftDay.SATURDAY.value, "Piazza Dalmazia", "11:00", "13:00"),
    ShiftTemplate(ShiftDay.SUNDAY.value, "Piazza SS. Annunziata", "15:30", "17:30"),
)


def find_template(day: str, location: str, start_time: str, end_time: str) -> Optional[ShiftTemplate]:
    candidate = ShiftTemplate(day, location.strip(), start_time, end_time)
    return candidate if candidate in SHIFT_CATALOG else None


def templates_for_day(day: str) -> list[ShiftTemplate]:
    return [t for t in SHIFT_CATALOG if t.day == day]

# attendance_engine/utils/time_lock.py
"""Time-locked attendance decisions.

Pure functions over plain schedule values and a naive *institute-local*
``datetime``. Nothing here touches the database or the clock, so the same
rules back both the dashboard status query and the write-time check.

A schedule's attendance window on its weekday is
``[start_time, start_time + grace_period_minutes]``, inclusive at both ends.
"""
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence, Set, Tuple
from uuid import UUID

from ..core.exceptions import AlreadyMarked, WindowExpired
from ..models.tenant_specific.class_schedule import DayOfWeek


class SlotState(enum.Enum):
    OPEN = "open"
    NOT_YET_OPEN = "not_yet_open"
    ALREADY_MARKED = "already_marked"
    EXPIRED = "expired"
    NOT_TODAY = "not_today"
    ARCHIVED = "archived"


class SessionState(enum.Enum):
    ACTIVE = "active"
    UPCOMING = "upcoming"
    NONE = "none"


class StatusReason(enum.Enum):
    OPEN = "open"
    STARTS_LATER = "starts_later"
    NO_CLASSES_TODAY = "no_classes_today"
    ALREADY_MARKED = "already_marked"
    ALL_FINISHED = "all_finished"


@dataclass(frozen=True)
class ScheduleSlot:
    schedule_id: UUID
    course_offering_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    grace_period_minutes: int
    archived: bool = False

    @classmethod
    def from_schedule(cls, schedule) -> "ScheduleSlot":
        return cls(
            schedule_id=schedule.id,
            course_offering_id=schedule.course_offering_id,
            day_of_week=schedule.day_of_week,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            grace_period_minutes=schedule.grace_period_minutes,
            archived=bool(schedule.is_deleted),
        )


@dataclass(frozen=True)
class SessionStatus:
    state: SessionState
    reason: StatusReason
    message: str
    slot: Optional[ScheduleSlot] = None
    session_date: Optional[date] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    seconds_remaining: Optional[int] = None
    seconds_until_start: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE


def window_for(slot: ScheduleSlot, day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, slot.start_time)
    return start, start + timedelta(minutes=slot.grace_period_minutes)


def evaluate_slot(slot: ScheduleSlot, now: datetime, marked: bool) -> SlotState:
    """State of one schedule at local time ``now``."""
    if slot.archived:
        return SlotState.ARCHIVED
    if slot.day_of_week is not DayOfWeek.from_date(now):
        return SlotState.NOT_TODAY

    window_start, window_end = window_for(slot, now.date())
    if now < window_start:
        return SlotState.NOT_YET_OPEN
    if now > window_end:
        return SlotState.EXPIRED
    return SlotState.ALREADY_MARKED if marked else SlotState.OPEN


def evaluate_day(slots: Iterable[ScheduleSlot], now: datetime, marked_schedule_ids: Set[UUID]) -> SessionStatus:
    """Pick the session that is open, or next, among today's schedules.

    Schedules are considered in ascending start time: the first open one wins,
    otherwise the first one that has not opened yet, otherwise nothing.
    """
    today = now.date()
    todays = sorted(
        (s for s in slots if not s.archived and s.day_of_week is DayOfWeek.from_date(now)),
        key=lambda s: s.start_time,
    )
    if not todays:
        return SessionStatus(
            state=SessionState.NONE,
            reason=StatusReason.NO_CLASSES_TODAY,
            message="No classes scheduled for today.",
            session_date=today,
        )

    evaluated = [(slot, evaluate_slot(slot, now, slot.schedule_id in marked_schedule_ids)) for slot in todays]

    for slot, state in evaluated:
        if state is SlotState.OPEN:
            window_start, window_end = window_for(slot, today)
            return SessionStatus(
                state=SessionState.ACTIVE,
                reason=StatusReason.OPEN,
                message=f"Attendance is open until {window_end:%H:%M}.",
                slot=slot,
                session_date=today,
                window_start=window_start,
                window_end=window_end,
                seconds_remaining=int((window_end - now).total_seconds()),
            )

    for slot, state in evaluated:
        if state is SlotState.NOT_YET_OPEN:
            window_start, window_end = window_for(slot, today)
            return SessionStatus(
                state=SessionState.UPCOMING,
                reason=StatusReason.STARTS_LATER,
                message=f"Next class starts at {slot.start_time:%H:%M}.",
                slot=slot,
                session_date=today,
                window_start=window_start,
                window_end=window_end,
                seconds_until_start=int((window_start - now).total_seconds()),
            )

    for slot, state in evaluated:
        if state is SlotState.ALREADY_MARKED:
            return SessionStatus(
                state=SessionState.NONE,
                reason=StatusReason.ALREADY_MARKED,
                message="Attendance already marked for the current class.",
                slot=slot,
                session_date=today,
            )

    return SessionStatus(
        state=SessionState.NONE,
        reason=StatusReason.ALL_FINISHED,
        message="All classes for today have finished.",
        session_date=today,
    )


def assert_submission_allowed(slot: ScheduleSlot, now: datetime, marked: bool) -> Tuple[datetime, datetime]:
    """Raise unless ``slot`` is open for submission at ``now``; return its window."""
    state = evaluate_slot(slot, now, marked)
    if state is SlotState.OPEN:
        return window_for(slot, now.date())
    if state is SlotState.ALREADY_MARKED:
        raise AlreadyMarked()
    if state is SlotState.ARCHIVED:
        raise WindowExpired("This class schedule has been archived")
    if state is SlotState.NOT_TODAY:
        today = DayOfWeek.from_date(now)
        raise WindowExpired(
            f"This class is scheduled for {slot.day_of_week.value}, not today ({today.value})"
        )

    window_start, window_end = window_for(slot, now.date())
    raise WindowExpired(
        f"Attendance can only be marked between {window_start:%H:%M} and {window_end:%H:%M}. "
        f"Current time: {now:%H:%M:%S}"
    )


def ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap: [a) and [b) share at least one instant."""
    return start_a < end_b and start_b < end_a


def find_overlap(candidate_start: time, candidate_end: time, others: Sequence) -> Optional[object]:
    """First schedule in ``others`` whose range overlaps the candidate range."""
    for other in others:
        if ranges_overlap(candidate_start, candidate_end, other.start_time, other.end_time):
            return other
    return None

"""
Scheduling Conflict Checker

A slot is (doctor, calendar day, "HH:MM"). The linear scan gives callers an
early, friendly answer; the unique constraint uq_appointment_slot on the
appointments table is what actually guarantees one appointment per slot when
two requests race between the scan and the insert.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from pms.models import Appointment
from pms.utils.rejections import Rejected, conflict

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'Doctor already has an appointment at this date and time'


def _calendar_day(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def _field(appointment, name):
    if isinstance(appointment, dict):
        return appointment.get(name)
    return getattr(appointment, name, None)


def check_conflict(doctor_id, appointment_date, time, existing: Iterable) -> Optional[Rejected]:
    """
    Return Rejected(CONFLICT) if ``existing`` holds an appointment for the
    same doctor on the same calendar day at exactly the same time, else None.

    ``existing`` may contain Appointment rows or plain dicts with
    doctor_id / date / time keys.
    """
    day = _calendar_day(appointment_date)
    for appointment in existing:
        if _field(appointment, 'doctor_id') != doctor_id:
            continue
        if _calendar_day(_field(appointment, 'date')) != day:
            continue
        if _field(appointment, 'time') == time:
            return conflict(SLOT_TAKEN_MESSAGE, 'time')
    return None


def schedule_appointment(store, normalized):
    """
    Check the slot against appointments read fresh from the store, then
    insert and commit.

    Returns:
        (Appointment, None) on success, (None, Rejected(CONFLICT)) if the slot
        is taken, including when the insert loses a race on the unique
        constraint.
    """
    doctor_id = normalized['doctor_id']
    existing = store.find_by(Appointment, doctor_id=doctor_id, date=normalized['date'])

    rejected = check_conflict(doctor_id, normalized['date'], normalized['time'], existing)
    if rejected:
        logger.info("Slot taken for doctor %s on %s %s", doctor_id, normalized['date'], normalized['time'])
        return None, rejected

    try:
        appointment = store.create(Appointment, **normalized)
        store.commit()
    except IntegrityError:
        store.rollback()
        logger.warning(
            "Concurrent booking lost the race for doctor %s on %s %s",
            doctor_id, normalized['date'], normalized['time'],
        )
        return None, conflict(SLOT_TAKEN_MESSAGE, 'time')

    return appointment, None

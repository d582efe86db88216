"""
Business rules for accounts, events, registrations and event materials.

Every function runs inside a Flask app context and works on the scoped
``db.session``, which checks a connection out of the engine pool for the
duration of the request. Functions that write commit their own transaction.
"""

import base64
import binascii
import logging
from collections import namedtuple

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

import storage
from errors import (
    DuplicateEmail,
    DuplicateRegistration,
    InvalidCredentials,
    NotFound,
    RoleMismatch,
    StorageFailure,
    ValidationError,
)
from extensions import db
from models import ROLE_ADMIN, ROLE_STUDENT, Account, Event, Registration

logger = logging.getLogger(__name__)

EVENT_FIELDS = (
    "title",
    "description",
    "date",
    "location",
    "slides",
    "slides_data",
    "slides_type",
    "recording",
    "recording_data",
    "recording_type",
)
REQUIRED_EVENT_FIELDS = ("title", "date")

# filename, mimetype, and either (directory, stored_name) or inline data
Material = namedtuple("Material", "filename mimetype directory stored_name data")

# compared against when the email is unknown so both failure paths hash once
_UNKNOWN_ACCOUNT_HASH = generate_password_hash("unknown-account")


# =====================
# AUTH
# =====================
def authenticate(email, password, role=None):
    account = Account.query.filter_by(email=email).first()

    stored = account.password if account else _UNKNOWN_ACCOUNT_HASH
    if not check_password_hash(stored, password or "") or account is None:
        logger.info("Failed login attempt")
        raise InvalidCredentials()

    if role and account.role != role:
        logger.info("Login for account %s rejected: role %s requested", account.id, role)
        raise RoleMismatch(role)

    return account.to_dict()


def register(email, password, name=None, department=None, usn=None):
    """Create a student account.

    name, department and usn are accepted for the sign-up form but the
    account does not store them.
    """
    if Account.query.filter_by(email=email).first():
        raise DuplicateEmail()

    account = Account(
        email=email,
        password=generate_password_hash(password),
        role=ROLE_STUDENT,
    )
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail()

    logger.info("Registered student account %s", account.id)
    return {"accountId": account.id}


def seed_admin(email, password):
    """Create the single admin account, or move it to `email` with a new password."""
    existing = Account.query.filter_by(email=email).first()
    if existing is not None and existing.role != ROLE_ADMIN:
        raise DuplicateEmail()

    account = Account.query.filter_by(role=ROLE_ADMIN).first()
    if account is None:
        account = Account(role=ROLE_ADMIN)
        db.session.add(account)
    account.email = email
    account.password = generate_password_hash(password)
    db.session.commit()
    logger.info("Admin account %s ready", account.email)
    return account


# =====================
# EVENTS
# =====================
def _get_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def _check_event(values):
    missing = [f for f in REQUIRED_EVENT_FIELDS if values.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            details={"missing": missing},
        )

    # slides are stored inline, so the set is all three or nothing
    slides = [values.get(f) for f in ("slides", "slides_data", "slides_type")]
    if any(slides) and not all(slides):
        raise ValidationError("Slides need a name, data and type together")

    # recording bytes may sit in the content store instead of recording_data
    recording = [values.get(f) for f in ("recording", "recording_type")]
    if any(recording) and not all(recording):
        raise ValidationError("Recording needs a name and type together")
    if values.get("recording_data") and not values.get("recording"):
        raise ValidationError("Recording data given without a recording name")


def list_events():
    rows = (
        db.session.query(Event, db.func.count(Registration.id))
        .outerjoin(Registration, Registration.event_id == Event.id)
        .group_by(Event.id)
        .order_by(Event.date.desc(), Event.id.desc())
        .all()
    )
    return [event.to_dict(registered_count=count) for event, count in rows]


def get_event(event_id):
    return _get_event(event_id).to_dict()


def create_event(title, description, date, location):
    values = {"title": title, "description": description, "date": date, "location": location}
    _check_event(values)

    event = Event(**values)
    db.session.add(event)
    db.session.commit()
    logger.info("Created event %s (%s)", event.id, event.title)
    return {"eventId": event.id}


def update_event(event_id, fields):
    """Replace every mutable field. Fields missing from `fields` become null."""
    event = _get_event(event_id)
    values = {name: fields.get(name) for name in EVENT_FIELDS}
    _check_event(values)

    for name, value in values.items():
        setattr(event, name, value)
    db.session.commit()
    logger.info("Replaced event %s", event_id)


def patch_event(event_id, fields):
    """Update only the fields present in `fields`, keeping the stored rest."""
    event = _get_event(event_id)
    values = {name: getattr(event, name) for name in EVENT_FIELDS}
    values.update({k: v for k, v in fields.items() if k in EVENT_FIELDS})
    _check_event(values)

    for name, value in values.items():
        setattr(event, name, value)
    db.session.commit()
    logger.info("Patched event %s: %s", event_id, sorted(k for k in fields if k in EVENT_FIELDS))


def delete_event(event_id):
    """Delete an event with its registrations and stored files. Missing ids are a no-op."""
    Registration.query.filter_by(event_id=event_id).delete()
    Event.query.filter_by(id=event_id).delete()
    db.session.commit()

    storage.remove_event(event_id)
    logger.info("Deleted event %s", event_id)


# =====================
# MATERIALS
# =====================
def attach_recording(event_id, filename, content, mimetype):
    event = _get_event(event_id)
    previous = storage.locate(event.id, event.recording)
    storage.save(event.id, filename, content)

    if previous and previous[1] != storage.stored_name(filename):
        storage.remove(event.id, previous[1])

    event.recording = filename
    event.recording_type = mimetype or "application/octet-stream"
    event.recording_data = None
    db.session.commit()
    logger.info("Attached recording %s to event %s", filename, event_id)


def _decode_inline(data):
    """Decode a base64 payload, with or without a data: URL header."""
    mimetype = None
    if data.startswith("data:") and "," in data:
        header, data = data.split(",", 1)
        mimetype = header[5:].split(";", 1)[0] or None
    try:
        return base64.b64decode(data, validate=True), mimetype
    except (binascii.Error, ValueError) as exc:
        raise StorageFailure("Stored file data is corrupt") from exc


def get_recording(event_id):
    event = db.session.get(Event, event_id)
    if event is None or not event.recording:
        raise NotFound("Recording not found")

    found = storage.locate(event.id, event.recording)
    if found:
        directory, name = found
        return Material(event.recording, event.recording_type, directory, name, None)

    if event.recording_data:
        content, inline_type = _decode_inline(event.recording_data)
        return Material(event.recording, event.recording_type or inline_type, None, None, content)

    raise NotFound("File not found")


def get_slides(event_id):
    event = db.session.get(Event, event_id)
    if event is None or not event.slides or not event.slides_data:
        raise NotFound("Slides not found")

    content, inline_type = _decode_inline(event.slides_data)
    return Material(event.slides, event.slides_type or inline_type, None, None, content)


def material_summary(event_id):
    event = _get_event(event_id)
    return {
        "id": event.id,
        "title": event.title,
        "slides": event.slides,
        "slides_data_present": bool(event.slides_data),
        "slides_data_length": len(event.slides_data or ""),
        "recording": event.recording,
        "recording_data_present": bool(event.recording_data),
        "recording_data_length": len(event.recording_data or ""),
        "recording_file_present": storage.locate(event.id, event.recording) is not None,
    }


# =====================
# REGISTRATIONS
# =====================
def list_registrations(event_id):
    registrations = (
        Registration.query.filter_by(event_id=event_id)
        .order_by(Registration.registered_date.desc(), Registration.id.desc())
        .all()
    )
    return [r.to_dict() for r in registrations]


def is_registered(event_id, email):
    return (
        db.session.query(Registration.id)
        .filter_by(event_id=event_id, email=email)
        .first()
        is not None
    )


def register_student(event_id, name, department, usn, email):
    _get_event(event_id)

    if is_registered(event_id, email):
        logger.info("Student %s already registered for event %s", email, event_id)
        raise DuplicateRegistration()

    registration = Registration(
        event_id=event_id,
        name=name,
        department=department,
        usn=usn,
        email=email,
    )
    db.session.add(registration)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent request inserted the same pair after our check
        db.session.rollback()
        raise DuplicateRegistration()

    logger.info("Registered %s for event %s", email, event_id)
    return {"registrationId": registration.id}


def unregister_student(event_id, email):
    deleted = Registration.query.filter_by(event_id=event_id, email=email).delete()
    db.session.commit()
    if deleted:
        logger.info("Unregistered %s from event %s", email, event_id)


def registrations_for_student(email):
    rows = (
        db.session.query(Registration.event_id)
        .filter_by(email=email)
        .order_by(Registration.event_id)
        .all()
    )
    return [row.event_id for row in rows]

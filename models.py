from datetime import date

from extensions import db

ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"


def _iso(value):
    return value.isoformat() if value is not None else None


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_STUDENT)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    def to_dict(self):
        # the password hash never leaves this model
        return {"id": self.id, "email": self.email, "role": self.role}


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    date = db.Column(db.String(20), nullable=False)
    location = db.Column(db.String(255))

    slides = db.Column(db.String(255))
    slides_data = db.Column(db.Text)
    slides_type = db.Column(db.String(100))

    recording = db.Column(db.String(255))
    recording_data = db.Column(db.Text)
    recording_type = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, server_default=db.func.now())

    registrations = db.relationship(
        "Registration",
        backref="event",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, registered_count=None):
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "location": self.location,
            "slides": self.slides,
            "slides_data": self.slides_data,
            "slides_type": self.slides_type,
            "recording": self.recording,
            "recording_data": self.recording_data,
            "recording_type": self.recording_type,
            "created_at": _iso(self.created_at),
        }
        if registered_count is not None:
            data["registeredStudentsCount"] = registered_count
        return data


class Registration(db.Model):
    __tablename__ = "registrations"
    __table_args__ = (
        db.UniqueConstraint("event_id", "email", name="uq_registration_event_email"),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(255), nullable=False)
    usn = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    registered_date = db.Column(db.Date, default=date.today)

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "name": self.name,
            "department": self.department,
            "usn": self.usn,
            "email": self.email,
            "registered_date": _iso(self.registered_date),
        }

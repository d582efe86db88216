import io
import logging

import click
from flask import Flask, jsonify, request, send_file, send_from_directory
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

import services
from config import Config
from errors import (
    CampusEventsError,
    DuplicateEmail,
    PayloadTooLarge,
    StorageFailure,
    ValidationError,
)
from extensions import db

logger = logging.getLogger(__name__)


# =====================
# APP FACTORY
# =====================
def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        filename=app.config["LOG_FILE"],
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    db.init_app(app)

    with app.app_context():
        db.create_all()

    register_error_handlers(app)
    register_commands(app)
    return app


# =====================
# ERROR HANDLERS
# =====================
def register_error_handlers(app):
    @app.errorhandler(CampusEventsError)
    def handle_domain_error(error):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.error("Database error on %s %s: %s", request.method, request.path, error)
        failure = StorageFailure()
        return jsonify(failure.to_dict()), failure.status

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        failure = PayloadTooLarge(app.config.get("MAX_CONTENT_LENGTH"))
        return jsonify(failure.to_dict()), failure.status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description, "code": error.name}), error.code


# =====================
# CLI
# =====================
def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create the accounts, events and registrations tables."""
        db.create_all()
        click.echo("Database tables created/verified")

    @app.cli.command("seed-admin")
    @click.option("--email", default=None, help="Admin email (default: ADMIN_EMAIL).")
    @click.option("--password", default=None, help="Admin password (default: ADMIN_PASSWORD).")
    def seed_admin(email, password):
        """Create the admin account, or move it to a new email and password."""
        email = email or app.config["ADMIN_EMAIL"]
        try:
            account = services.seed_admin(email, password or app.config["ADMIN_PASSWORD"])
        except DuplicateEmail:
            raise click.ClickException(f"{email} already belongs to a student account")
        click.echo(f"Admin account ready: {account.email}")


app = create_app()


# =====================
# REQUEST HELPERS
# =====================
def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require(data, *fields):
    """Return the named fields, which must all be non-empty strings."""
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            details={"missing": missing},
        )
    invalid = [f for f in fields if not isinstance(data[f], str)]
    if invalid:
        raise ValidationError(
            "Fields must be strings: " + ", ".join(invalid),
            details={"invalid": invalid},
        )
    return [data[f] for f in fields]


def send_material(material):
    if material.directory:
        return send_from_directory(
            material.directory, material.stored_name, mimetype=material.mimetype
        )
    return send_file(
        io.BytesIO(material.data),
        mimetype=material.mimetype or "application/octet-stream",
        download_name=material.filename,
    )


# =====================
# AUTH ROUTES
# =====================
@app.route("/api/login", methods=["POST"])
def login():
    data = json_body()
    email, password = require(data, "email", "password")
    user = services.authenticate(email, password, role=data.get("role"))
    return jsonify({"success": True, "user": user})


@app.route("/api/register", methods=["POST"])
def register():
    data = json_body()
    email, password = require(data, "email", "password")
    services.register(
        email,
        password,
        name=data.get("name"),
        department=data.get("department"),
        usn=data.get("usn"),
    )
    return jsonify({"success": True, "message": "Registration successful"})


# =====================
# EVENT CRUD
# =====================
@app.route("/api/events", methods=["GET"])
def list_events():
    return jsonify(services.list_events())


@app.route("/api/events", methods=["POST"])
def create_event():
    data = json_body()
    title, date = require(data, "title", "date")
    created = services.create_event(
        title, data.get("description"), date, data.get("location")
    )
    return jsonify({"id": created["eventId"], "success": True})


@app.route("/api/events/<int:event_id>", methods=["GET"])
def get_event(event_id):
    return jsonify(services.get_event(event_id))


@app.route("/api/events/<int:event_id>", methods=["PUT"])
def update_event(event_id):
    services.update_event(event_id, json_body())
    return jsonify({"success": True})


@app.route("/api/events/<int:event_id>", methods=["PATCH"])
def patch_event(event_id):
    services.patch_event(event_id, json_body())
    return jsonify({"success": True})


@app.route("/api/events/<int:event_id>", methods=["DELETE"])
def delete_event(event_id):
    services.delete_event(event_id)
    return jsonify({"success": True})


# =====================
# REGISTRATIONS
# =====================
@app.route("/api/events/<int:event_id>/registrations", methods=["GET"])
def event_registrations(event_id):
    return jsonify(services.list_registrations(event_id))


@app.route("/api/events/<int:event_id>/register", methods=["POST"])
def register_student(event_id):
    name, department, usn, email = require(json_body(), "name", "department", "usn", "email")
    created = services.register_student(event_id, name, department, usn, email)
    return jsonify({"id": created["registrationId"], "success": True})


@app.route("/api/events/<int:event_id>/unregister", methods=["DELETE"])
def unregister_student(event_id):
    (email,) = require(json_body(), "email")
    services.unregister_student(event_id, email)
    return jsonify({"success": True})


@app.route("/api/events/<int:event_id>/check-registration", methods=["GET"])
def check_registration(event_id):
    (email,) = require(request.args, "email")
    return jsonify({"isRegistered": services.is_registered(event_id, email)})


@app.route("/api/student/<email>/registrations", methods=["GET"])
def student_registrations(email):
    return jsonify(services.registrations_for_student(email))


# =====================
# MATERIALS
# =====================
@app.route("/api/events/<int:event_id>/upload-recording", methods=["POST"])
def upload_recording(event_id):
    uploaded = request.files.get("recording")
    if not uploaded or not uploaded.filename:
        raise ValidationError("No file uploaded")

    services.attach_recording(
        event_id, uploaded.filename, uploaded.read(), uploaded.mimetype
    )
    return jsonify({"success": True})


@app.route("/api/events/<int:event_id>/recording", methods=["GET"])
def recording(event_id):
    return send_material(services.get_recording(event_id))


@app.route("/api/events/<int:event_id>/slides", methods=["GET"])
def slides(event_id):
    return send_material(services.get_slides(event_id))


@app.route("/api/events/<int:event_id>/files", methods=["GET"])
def event_files(event_id):
    return jsonify(services.material_summary(event_id))


# =====================
# RUN
# =====================
if __name__ == "__main__":
    app.run(debug=True)

"""
Content store for uploaded recordings.

Files live under UPLOAD_FOLDER/<event_id>/<secure filename>, so two events can
hold files with the same name without overwriting each other.
"""

import logging
import os
import shutil

from flask import current_app
from werkzeug.utils import secure_filename

from errors import StorageFailure, ValidationError

logger = logging.getLogger(__name__)


def event_dir(event_id):
    return os.path.join(current_app.config["UPLOAD_FOLDER"], str(event_id))


def stored_name(filename):
    name = secure_filename(filename or "")
    if not name:
        raise ValidationError("Invalid file name")
    return name


def save(event_id, filename, content):
    """Write `content` for the event and return the path it was written to."""
    folder = event_dir(event_id)
    path = os.path.join(folder, stored_name(filename))
    try:
        os.makedirs(folder, exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(content)
    except OSError as exc:
        logger.error("Could not write %s: %s", path, exc)
        raise StorageFailure("Could not store file") from exc

    logger.info("Stored %d bytes for event %s at %s", len(content), event_id, path)
    return path


def locate(event_id, filename):
    """Return (directory, name) of a stored file, or None when it is missing."""
    if not filename:
        return None
    name = secure_filename(filename)
    if not name:
        return None
    folder = event_dir(event_id)
    if not os.path.isfile(os.path.join(folder, name)):
        return None
    return folder, name


def remove_event(event_id):
    folder = event_dir(event_id)
    if os.path.isdir(folder):
        shutil.rmtree(folder, ignore_errors=True)
        logger.info("Removed stored files for event %s", event_id)


def remove(event_id, filename):
    found = locate(event_id, filename)
    if found:
        os.remove(os.path.join(*found))
        logger.info("Removed %s for event %s", found[1], event_id)

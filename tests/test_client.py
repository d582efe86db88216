import pytest

import services
from client import ApiError
from errors import StorageFailure


def test_student_flow(dashboard, student, event_id):
    user = dashboard.login("a@x.com", "pw123456", role="student")
    assert user["role"] == "student"
    assert not dashboard.is_admin

    events = dashboard.load_events()
    assert [e["id"] for e in events] == [event_id]

    dashboard.register_for_event(event_id, "Asha", "CSE", "1XX21CS001")
    assert dashboard.is_registered(event_id)
    assert dashboard.event(event_id)["registeredStudentsCount"] == 1

    dashboard.unregister_from_event(event_id)
    assert not dashboard.is_registered(event_id)
    assert dashboard.event(event_id)["registeredStudentsCount"] == 0


def test_login_role_mismatch(dashboard, student):
    with pytest.raises(ApiError) as exc:
        dashboard.login("a@x.com", "pw123456", role="admin")

    assert exc.value.status == 403
    assert dashboard.user is None
    assert dashboard.error == "Invalid credentials for admin role"


def test_duplicate_registration_rolls_back(dashboard, student, event_id):
    dashboard.login("a@x.com", "pw123456")
    dashboard.register_for_event(event_id, "Asha", "CSE", "1XX21CS001")

    with pytest.raises(ApiError) as exc:
        dashboard.register_for_event(event_id, "Asha", "CSE", "1XX21CS001")

    assert exc.value.status == 400
    assert dashboard.my_event_ids == {event_id}
    assert len(services.list_registrations(event_id)) == 1


def test_admin_manages_events(dashboard, admin):
    dashboard.login("admin@gdgconnect.com", "admin123", role="admin")
    assert dashboard.is_admin

    event_id = dashboard.create_event("Study Jam", "Cloud basics", "2024-10-05", "Lab 1")
    assert dashboard.event(event_id)["title"] == "Study Jam"

    dashboard.update_event(event_id, location="Lab 2")
    updated = dashboard.event(event_id)
    assert updated["location"] == "Lab 2"
    assert updated["description"] == "Cloud basics"

    dashboard.upload_recording(event_id, "talk.mp4", b"video-bytes", "video/mp4")
    assert dashboard.event(event_id)["recording"] == "talk.mp4"
    content, content_type = dashboard.download_recording(event_id)
    assert content == b"video-bytes"
    assert content_type.startswith("video/mp4")

    dashboard.delete_event(event_id)
    assert dashboard.events == []


def test_register_account_then_login(dashboard):
    dashboard.register("new@x.com", "pw123456", "New", "ME", "USN9")

    assert dashboard.login("new@x.com", "pw123456")["email"] == "new@x.com"


def test_logout_clears_state(dashboard, student, event_id):
    dashboard.login("a@x.com", "pw123456")
    dashboard.load_events()
    dashboard.logout()

    assert dashboard.user is None
    assert dashboard.events == []
    assert dashboard.my_event_ids == set()


def test_failed_unregister_keeps_registration(dashboard, student, event_id, monkeypatch):
    dashboard.login("a@x.com", "pw123456")
    dashboard.register_for_event(event_id, "Asha", "CSE", "1XX21CS001")

    def fail(*args):
        raise StorageFailure()

    monkeypatch.setattr(services, "unregister_student", fail)
    with pytest.raises(ApiError) as exc:
        dashboard.unregister_from_event(event_id)

    assert exc.value.status == 500
    assert dashboard.my_event_ids == {event_id}


def test_failed_unregister_does_not_add_event(dashboard, student, event_id, monkeypatch):
    dashboard.login("a@x.com", "pw123456")

    def fail(*args):
        raise StorageFailure()

    monkeypatch.setattr(services, "unregister_student", fail)
    with pytest.raises(ApiError):
        dashboard.unregister_from_event(event_id)

    assert dashboard.my_event_ids == set()


def test_registration_requires_login(dashboard, event_id):
    with pytest.raises(ApiError) as exc:
        dashboard.register_for_event(event_id, "Asha", "CSE", "1XX21CS001")
    assert exc.value.status == 0
    assert dashboard.error == "Not logged in"

    with pytest.raises(ApiError):
        dashboard.unregister_from_event(event_id)
    assert len(services.list_registrations(event_id)) == 0

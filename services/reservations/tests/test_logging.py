import json
import logging

from shared.core.logging_config import PhoneRedactionFilter, StructuredFormatter


def _record(msg, *args, **attrs):
    record = logging.LogRecord("reservations", logging.INFO, __file__, 10, msg, args, None)
    record.__dict__.update(attrs)
    return record


def test_phone_numbers_are_redacted():
    record = _record("Patient phone %s stored", "+1 555-010-0199")
    assert PhoneRedactionFilter().filter(record) is True
    assert record.getMessage() == "Patient phone ***REDACTED*** stored"


def test_messages_without_phone_are_untouched():
    record = _record("Reservation %s PENDING -> ACCEPTED", 42)
    PhoneRedactionFilter().filter(record)
    assert record.getMessage() == "Reservation 42 PENDING -> ACCEPTED"


def test_structured_formatter_emits_json():
    record = _record("Sweep done", extra_fields={"transitioned": [1, 2]})
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["message"] == "Sweep done"
    assert payload["level"] == "INFO"
    assert payload["custom"] == {"transitioned": [1, 2]}
    assert "service" in payload


def test_request_id_header_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_phone_numbers_in_extra_fields_are_redacted():
    fields = {"reservation_id": 7, "phone": "+1 555 010 0199", "history": ["called +15550100199"]}
    record = _record("Phone provided", extra_fields=fields)
    PhoneRedactionFilter().filter(record)
    assert record.extra_fields == {
        "reservation_id": 7,
        "phone": "***REDACTED***",
        "history": ["called ***REDACTED***"],
    }
    # the caller's dict is left alone
    assert fields["phone"] == "+1 555 010 0199"


def test_caller_id_reaches_engine_logs(client, world, caplog):
    with caplog.at_level(logging.INFO, logger="app.application.service"):
        resp = client.post(
            "/reservations/",
            json={"pharmacyId": world.pharmacy.id, "medicineId": world.medicine.id, "quantity": 2},
            headers=world.patient_headers,
        )
    assert resp.status_code == 201
    created = [r for r in caplog.records if r.getMessage() == f"Reservation {resp.json()['id']} created"]
    assert len(created) == 1
    assert created[0].user_id == str(world.patient.id)
    assert created[0].request_id

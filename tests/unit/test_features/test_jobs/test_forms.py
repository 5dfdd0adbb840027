"""Tests for job submission forms."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from transporter_service.features.jobs.schemas import (
    FORMS,
    LookupForm,
    ProvidersForm,
    SchemaForm,
    StatusForm,
    UploadForm,
    VerifyForm,
)
from transporter_service.infra.tasks.jobs import JobPriority


def test_upload_form_payload():
    form = UploadForm.model_validate(
        {
            "account_id": "7",
            "priority": "low",
            "package": " /data/abc.itmsp ",
            "delete": "true",
            "rate": "500",
            "transport": "Aspera",
            "notes": "passed through",
        }
    )

    options, priority = form.to_payload()

    assert priority is JobPriority.LOW
    assert options == {
        "package": "/data/abc.itmsp",
        "delete": True,
        "rate": 500,
        "transport": "Aspera",
        "notes": "passed through",
    }


def test_priority_is_optional():
    _, priority = ProvidersForm.model_validate({"account_id": 1}).to_payload()

    assert priority is None


def test_credentials_override_is_passed_through():
    options, _ = ProvidersForm.model_validate(
        {"account_id": 1, "username": "other", "password": "pw"}
    ).to_payload()

    assert options == {"username": "other", "password": "pw"}


@pytest.mark.parametrize(
    "payload",
    [
        {"package": "/data/abc.itmsp"},
        {"account_id": 0, "package": "/data/abc.itmsp"},
        {"account_id": 1, "package": "/data/abc.zip"},
        {"account_id": 1},
        {"account_id": 1, "package": "/data/abc.itmsp", "priority": "urgent"},
        {"account_id": 1, "package": "/data/abc.itmsp", "rate": 0},
    ],
)
def test_upload_form_rejects(payload):
    with pytest.raises(ValidationError):
        UploadForm.model_validate(payload)


def test_verify_form_accepts_trailing_slash():
    form = VerifyForm.model_validate(
        {"account_id": 1, "package": "/data/abc.itmsp/", "verify_assets": "1"}
    )

    assert form.to_payload()[0] == {"package": "/data/abc.itmsp/", "verify_assets": True}


def test_schema_form_folds_version():
    form = SchemaForm.model_validate(
        {"account_id": 1, "version_name": "film", "version_number": "5.0", "type": "strict"}
    )

    assert form.to_payload()[0] == {"type": "strict", "version": "film5.0"}


@pytest.mark.parametrize(
    "changes",
    [
        {"version_name": "music"},
        {"version_number": "0"},
        {"version_number": "-1"},
        {"version_number": "abc"},
        {"version_number": "NaN"},
        {"type": "loose"},
    ],
)
def test_schema_form_rejects(changes):
    payload = {"account_id": 1, "version_name": "tv", "version_number": "5.1", "type": "strict"}

    with pytest.raises(ValidationError):
        SchemaForm.model_validate({**payload, **changes})


@pytest.mark.parametrize("key", ["vendor_id", "apple_id"])
def test_lookup_form_maps_identifier(key):
    form = LookupForm.model_validate(
        {"account_id": 1, "package_id": key, "package_id_value": "X1", "destination": "/tmp"}
    )

    assert form.to_payload()[0] == {key: "X1", "destination": "/tmp"}


def test_lookup_form_requires_value():
    with pytest.raises(ValidationError):
        LookupForm.model_validate({"account_id": 1, "package_id": "vendor_id"})


def test_status_form_requires_vendor_id():
    with pytest.raises(ValidationError):
        StatusForm.model_validate({"account_id": 1})
    assert StatusForm.model_validate({"account_id": 1, "vendor_id": "V"}).to_payload()[0] == {
        "vendor_id": "V"
    }


def test_every_form_has_a_job_class():
    from transporter_service.infra.tasks.jobs import job_class_for

    assert all(job_class_for(kind) is not None for kind in FORMS)

"""
Tests for the upload -> analysis -> quota flow
"""

import asyncio

import pytest

from bloodlens.core.errors import (
    BadRequest,
    PayloadTooLarge,
    QuotaExceeded,
    Unauthorized,
    UnsupportedMediaType,
    UpstreamFailure,
)
from bloodlens.services.analysis_pipeline import UploadedReport
from bloodlens.services.report_state import CompletedReport, FailedReport
from tests.conftest import make_image


def _upload(**overrides) -> UploadedReport:
    fields = {
        "file_name": "cbc.jpg",
        "content_type": "image/jpeg",
        "data": make_image(1200, 900),
    }
    fields.update(overrides)
    return UploadedReport(**fields)


async def test_new_user_first_analysis(db, fake_ai, token):
    seen_statuses = []

    async def during_analysis():
        listed = await db.reports.list_for_user("user-1")
        seen_statuses.extend(r["status"] for r in listed)

    fake_ai.during_analysis = during_analysis

    result = await db.pipeline.analyze(token, _upload())

    assert seen_statuses == ["processing"]
    report = await db.reports.get(result.report_id)
    assert isinstance(report, CompletedReport)
    assert report.analysis.risk_level == "low"
    assert result.share_url == f"https://bloodlens.test/share/{report.share_id}"

    user = await db.users.get("user-1")
    assert user.email == "user1@example.com"
    assert user.free_uploads_used == 1

    # The model got the normalized JPEG, not the raw upload
    assert fake_ai.analysis_calls[0]["image_data_url"].startswith("data:image/jpeg;base64,")


async def test_second_free_analysis_is_rejected(db, fake_ai, token):
    await db.pipeline.analyze(token, _upload())

    with pytest.raises(QuotaExceeded) as exc:
        await db.pipeline.analyze(token, _upload())

    assert exc.value.message == "Upgrade to Pro for more uploads"
    assert len(await db.reports.list_for_user("user-1")) == 1
    assert (await db.users.get("user-1")).free_uploads_used == 1
    assert len(fake_ai.analysis_calls) == 1


async def test_pro_user_is_not_counted(db, token):
    await db.users.activate_pro("user-1", plan="pro", sub_id="sub_1")

    for _ in range(3):
        await db.pipeline.analyze(token, _upload())

    assert (await db.users.get("user-1")).free_uploads_used == 0
    assert len(await db.reports.list_for_user("user-1")) == 3


async def test_model_failure_marks_report_failed(db, fake_ai, token):
    fake_ai.analysis_error = UpstreamFailure("Language model request failed: timeout")

    with pytest.raises(UpstreamFailure) as exc:
        await db.pipeline.analyze(token, _upload())

    assert exc.value.message.startswith("Server error: ")
    [entry] = await db.reports.list_for_user("user-1")
    report = await db.reports.get(entry["reportId"])
    assert isinstance(report, FailedReport)
    assert "timeout" in report.error
    assert (await db.users.get("user-1")).free_uploads_used == 0


async def test_undecodable_image_marks_report_failed(db, token):
    with pytest.raises(UpstreamFailure):
        await db.pipeline.analyze(token, _upload(data=b"not really a jpeg"))

    [entry] = await db.reports.list_for_user("user-1")
    assert entry["status"] == "error"
    assert (await db.users.get("user-1")).free_uploads_used == 0


async def test_unstructured_reply_still_completes(db, fake_ai, token):
    fake_ai.analysis_reply = "Sorry, I can't help with that."

    result = await db.pipeline.analyze(token, _upload())

    report = await db.reports.get(result.report_id)
    assert isinstance(report, CompletedReport)
    assert report.analysis.summary == "Analysis failed to generate structure."
    assert (await db.users.get("user-1")).free_uploads_used == 1


async def test_non_image_is_rejected_before_anything_is_stored(db, fake_ai, token):
    with pytest.raises(UnsupportedMediaType) as exc:
        await db.pipeline.analyze(token, _upload(file_name="cbc.pdf", content_type="application/pdf"))

    assert exc.value.message == "File type application/pdf not supported"
    assert await db.reports.count() == 0
    assert await db.users.get("user-1") is None
    assert fake_ai.analysis_calls == []


async def test_missing_and_oversize_files(db, token):
    with pytest.raises(BadRequest) as exc:
        await db.pipeline.analyze(token, None)
    assert exc.value.message == "No files uploaded"

    with pytest.raises(BadRequest):
        await db.pipeline.analyze(token, _upload(data=b""))

    too_big = b"\xff" * (db.settings.max_upload_bytes + 1)
    with pytest.raises(PayloadTooLarge):
        await db.pipeline.analyze(token, _upload(data=too_big))

    assert await db.reports.count() == 0


async def test_missing_token(db):
    with pytest.raises(Unauthorized):
        await db.pipeline.analyze(None, _upload())

    assert await db.reports.count() == 0


async def test_patient_context_merges_form_and_profile(db, fake_ai, token):
    await db.users.update_profile("user-1", current_medications="Metformin", chronic_conditions="Type 2 diabetes")

    await db.pipeline.analyze(token, _upload(age="54", gender="female", medications="Atorvastatin",
                                             extracted_text="HbA1c 7.1 %"))

    call = fake_ai.analysis_calls[0]
    assert "Patient Age: 54" in call["patient_context"]
    assert "Patient Gender: female" in call["patient_context"]
    assert "Current Medications: Atorvastatin, Metformin" in call["patient_context"]
    assert "Known Chronic Conditions: Type 2 diabetes" in call["patient_context"]
    assert call["extracted_text"] == "HbA1c 7.1 %"


async def test_concurrent_free_analyses_both_count(db, fake_ai, token):
    await db.users.get_or_create("user-1", "user1@example.com")
    arrived = []
    both_in = asyncio.Event()

    # Hold both requests at the model call so each has passed the quota check
    async def during_analysis():
        arrived.append(True)
        if len(arrived) == 2:
            both_in.set()
        await asyncio.wait_for(both_in.wait(), timeout=5)

    fake_ai.during_analysis = during_analysis

    results = await asyncio.gather(
        db.pipeline.analyze(token, _upload()),
        db.pipeline.analyze(token, _upload()),
    )

    assert len({r.report_id for r in results}) == 2
    assert (await db.users.get("user-1")).free_uploads_used == 2

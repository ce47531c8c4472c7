import pytest
from pydantic import ValidationError

from media_pipeline.models import Job
from media_pipeline.schemas import BatchState, JobState, ProcessingOptions

# ========== Testes para Schemas ==========

def test_state_enums():
    assert BatchState.PROCESSING == "processing"
    assert BatchState.COMPLETED == "completed"

    assert [s for s in JobState if s.is_terminal] == [JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT]

def test_options_accept_camel_case_and_snake_case():
    camel = ProcessingOptions.model_validate({
        "silenceThreshold": 0.2,
        "minDuration": 4,
        "removeSilence": True,
        "autoVolume": True,
        "faceFocus": True,
    })
    snake = ProcessingOptions(silence_threshold=0.2, min_duration=4, remove_silence=True,
                              auto_volume=True, face_focus=True)

    assert camel == snake
    assert camel.stabilize is False

def test_options_validation():
    with pytest.raises(ValidationError):
        ProcessingOptions(silence_threshold=-0.1)
    with pytest.raises(ValidationError):
        ProcessingOptions(silence_threshold=1.01)
    with pytest.raises(ValidationError):
        ProcessingOptions(min_duration=-5)

def test_options_are_immutable():
    options = ProcessingOptions()
    with pytest.raises(ValidationError):
        options.remove_silence = True

def test_job_transitions():
    job = Job(batch_id="b", index=0, filename="a.mp4", options=ProcessingOptions())
    assert job.state == JobState.PENDING

    job.advance(JobState.RUNNING)
    assert job.started_at is not None

    job.advance(JobState.TIMED_OUT)
    assert job.ended_at is not None

    with pytest.raises(ValueError):
        job.advance(JobState.SUCCEEDED)

def test_job_ids_are_unique():
    options = ProcessingOptions()
    ids = {Job(batch_id="b", index=i, filename="a.mp4", options=options).job_id for i in range(50)}
    assert len(ids) == 50

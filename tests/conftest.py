"""Shared test fixtures and Hypothesis strategies for catalogdq tests."""

import logging

import pytest
from hypothesis import settings
from hypothesis import strategies as st

from catalogdq.core.queue import InProcessWorkQueue
from catalogdq.core.store import InMemoryEntityStore, InMemoryJobRepository, StoreAuditSink
from catalogdq.importing import ImportPipeline, ImportService
from catalogdq.jobs import JobService
from catalogdq.merge import MergeEngine
from catalogdq.validation import ValidationEngine, ValidationService, bootstrap_registry

settings.register_profile("catalogdq", max_examples=100, deadline=None)
settings.load_profile("catalogdq")


# Hypothesis strategies for generating test data

tag_types = st.sampled_from(["AI", "AO", "DI", "DO", "PID", "Valve", "Drive", "Totaliser", "Calc"])

short_text = st.text(
    alphabet=st.characters(min_codepoint=32, max_codepoint=126),
    max_size=30,
)


@st.composite
def analog_tag(draw, with_units: bool = True):
    """Generate AI/AO tag payloads with a valid ascending scale."""
    tag_type = draw(st.sampled_from(["AI", "AO"]))
    number = draw(st.integers(min_value=100, max_value=999))
    low = draw(st.integers(min_value=0, max_value=500))
    span = draw(st.integers(min_value=1, max_value=10_000))
    tag = {
        "name": f"{tag_type}-{number}",
        "type": tag_type,
        "scaleLow": low,
        "scaleHigh": low + span,
    }
    if with_units:
        tag["engineeringUnits"] = draw(st.sampled_from(["degC", "bar", "m3/h", "%", "mA"]))
    return tag


@st.composite
def complete_alarm(draw):
    """Generate alarm payloads that satisfy every completeness check."""
    return {
        "name": f"ALM-{draw(st.integers(min_value=1, max_value=999))}",
        "priority": draw(st.sampled_from(["Critical", "High", "Medium", "Low"])),
        "setpoint": draw(st.floats(min_value=-100, max_value=1000, allow_nan=False)),
        "tagId": "tag-1",
        "rationalization": "Protects the pump from running dry",
        "consequence": "Seal damage and loss of containment",
        "operatorAction": "Stop the pump and check suction valve",
    }


# Fixtures


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def jobs() -> JobService:
    return JobService(InMemoryJobRepository())


@pytest.fixture
def registry():
    return bootstrap_registry()


@pytest.fixture
def engine(registry, store) -> ValidationEngine:
    return ValidationEngine(registry, store)


@pytest.fixture
def validation_service(engine, store) -> ValidationService:
    return ValidationService(engine, store)


@pytest.fixture
def merge_engine(store) -> MergeEngine:
    return MergeEngine(store, StoreAuditSink(store))


@pytest.fixture
def pipeline(engine, store, jobs) -> ImportPipeline:
    return ImportPipeline(engine, store, jobs)


@pytest.fixture
def queue(pipeline) -> InProcessWorkQueue:
    return InProcessWorkQueue(pipeline)


@pytest.fixture
def import_service(jobs, queue, store) -> ImportService:
    return ImportService(jobs, queue, store)


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by configure_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)

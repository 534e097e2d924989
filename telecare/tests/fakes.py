"""Test doubles shared by the service and route tests."""
import asyncio
from datetime import datetime, timedelta, timezone


class FakeBackend:
    """Stands in for the chat-completions client; records every call."""

    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def complete(self, system, prompt):
        self.calls.append((system, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class CountingEngine:
    """Wraps a real engine and counts analyze() calls."""

    def __init__(self, engine):
        self.engine = engine
        self.calls = 0

    async def analyze(self, request):
        self.calls += 1
        self.last_request = request
        return await self.engine.analyze(request)


class FakeRepository:
    """In-memory AssessmentRepository."""

    def __init__(self):
        self.rows = {}

    def create(self, assessment):
        self.rows[assessment.id] = assessment
        return assessment

    def get(self, assessment_id):
        return self.rows.get(assessment_id)

    def list_for_patient(self, patient_id, limit=None, offset=0, submitted_by=None):
        rows = [r for r in self.rows.values() if r.patient_id == patient_id]
        if submitted_by is not None:
            rows = [r for r in rows if r.submitted_by == submitted_by]
        rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        rows = rows[offset:]
        return rows if limit is None else rows[:limit]


class StepClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = current + timedelta(minutes=1)
        return current

import copy
import json
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from bson import ObjectId

from app.models.interview import Question
from app.schemas.interview import InterviewConfig
from app.services.interview_service import InterviewService
from app.services.llm_service import TextGenerator
from app.services.notification_service import Notifier


# ── in-memory document store ─────────────────────────────────────────────────

def _get(doc: Dict[str, Any], dotted: str):
    value = doc
    for part in dotted.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        actual = _get(doc, key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    def sort(self, key, direction=1):
        self.docs.sort(key=lambda d: _get(d, key), reverse=direction == -1)
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """Just enough of Motor's collection API for the services."""

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self.fail_on_insert = None

    async def insert_one(self, doc):
        if self.fail_on_insert and self.fail_on_insert(doc):
            raise RuntimeError("insert failed")
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query, sort=None):
        found = [d for d in self.docs if _matches(d, query)]
        if sort:
            key, direction = sort[0]
            found.sort(key=lambda d: _get(d, key), reverse=direction == -1)
        return copy.deepcopy(found[0]) if found else None

    def find(self, query=None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query or {})])

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    def _apply(self, doc, update):
        for key, value in update.get("$set", {}).items():
            target = doc
            parts = key.split(".")
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = copy.deepcopy(value)
        for key in update.get("$unset", {}):
            doc.pop(key, None)

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        matched = [d for d in self.docs if _matches(d, query)]
        for doc in matched:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def find_one_and_delete(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return doc
        return None


class FakeDatabase:
    def __init__(self):
        self.interviews = FakeCollection()
        self.users = FakeCollection()
        self.projects = FakeCollection()


# ── collaborators ────────────────────────────────────────────────────────────

class ScriptedTextGenerator(TextGenerator):
    """Returns queued replies in order and records every prompt."""

    def __init__(self):
        self.model = "test-model"
        self.replies: List[Any] = []
        self.prompts: List[str] = []

    def queue(self, *replies):
        for reply in replies:
            if isinstance(reply, (dict, list)):
                reply = "```json\n" + json.dumps(reply) + "\n```"
            self.replies.append(reply)

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError(f"Unexpected text generation call: {prompt[:80]}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingNotifier(Notifier):
    def __init__(self):
        super().__init__(mail_url="http://mail.test/send", batch_url="http://mail.test/batch")
        self.sent: List[Any] = []

    async def _post(self, url, payload):
        self.sent.append((url, payload))
        return True


# ── fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def llm():
    return ScriptedTextGenerator()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(db, llm, notifier):
    return InterviewService(db, llm, notifier)


@pytest.fixture
def reviewer(db):
    doc = {"_id": ObjectId(), "name": "Rita Reviewer", "email": "rita@acme.com",
           "role": "hr", "company": "Acme", "isActive": True, "createdAt": datetime(2026, 1, 5)}
    db.users.docs.append(doc)
    return doc["_id"]


@pytest.fixture
def candidate(db):
    doc = {"_id": ObjectId(), "name": "Casey Candidate", "email": "casey@example.com",
           "role": "candidate", "company": "", "isActive": True, "createdAt": datetime(2026, 1, 6)}
    db.users.docs.append(doc)
    return doc["_id"]


def mcq_questions(topics, correct="A"):
    return [
        Question(
            question_text=f"Question {i + 1}?",
            topic=topic,
            options={"A": "a", "B": "b", "C": "c", "D": "d"},
            correct_answer=correct,
            explanation="because",
        )
        for i, topic in enumerate(topics)
    ]


def virtual_questions(topics):
    return [
        Question(
            question_text=f"Explain concept {i + 1}",
            topic=topic,
            expected_key_points=["point"],
            question_type="conceptual",
        )
        for i, topic in enumerate(topics)
    ]


def config_for(mode, num_questions):
    return InterviewConfig(
        job_role="Backend Engineer",
        job_description="Build and operate Python services that score interviews at scale.",
        tech_stack=["Python", "MongoDB"],
        mode=mode,
        difficulty="medium",
        num_questions=num_questions,
        duration_minutes=30,
    )


@pytest.fixture
def seed_interview(service, reviewer, candidate):
    """Insert an interview directly, bypassing question generation."""
    async def _seed(mode="mcq", topics=("Python",) * 5, status="pending", **extra):
        questions = mcq_questions(topics) if mode == "mcq" else virtual_questions(topics)
        record = service.build_record(reviewer, candidate, config_for(mode, len(questions)), questions, "Acme")
        record = record.model_copy(update={"status": status, **extra})
        return await service.insert(record)
    return _seed


MCQ_REPORT = {
    "overallSummary": "Solid fundamentals",
    "strengths": ["Python"],
    "weaknesses": ["Databases"],
    "recommendations": ["Practice indexing"],
    "hiringRecommendation": "Hire",
    "hiringRationale": "Good score",
}

VIRTUAL_REPORT = {
    "executiveSummary": "Clear communicator",
    "technicalCompetency": "Good",
    "softSkillsAssessment": "Good",
    "strengths": ["Explains trade-offs"],
    "areasForImprovement": ["Depth"],
    "overallRating": "Good",
    "hiringRecommendation": "Consider",
    "hiringRationale": "Average depth",
    "suggestedNextSteps": ["System design round"],
}


def evaluation(score, verdict="Good"):
    return {
        "score": score,
        "maxScore": 100,
        "technicalAccuracy": min(score, 40),
        "depthScore": 0,
        "clarityScore": 0,
        "practicalScore": 0,
        "verdict": verdict,
        "strengths": ["clear"],
        "gaps": [],
        "idealAnswerSummary": "ideal",
    }

"""Shared test fixtures."""

import json

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from app.main import app
from app.services import providers


def _escape_pdf_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(text: str) -> bytes:
    """Builds a one-page PDF with a single line of Helvetica text."""
    stream = f"BT /F1 12 Tf 72 720 Td ({_escape_pdf_text(text)}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_offset,
    )
    return bytes(out)


def model_answer(**overrides) -> str:
    payload = {
        "score": 82,
        "skillsMatch": ["React", "TypeScript"],
        "missingSkills": ["AWS"],
        "rewrittenCV": "# Frontend Engineer\nReact and TypeScript specialist.",
        "ethicalInsights": {"biasCheck": "No biased wording found.", "tokenUsage": 0},
    }
    payload.update(overrides)
    return "```json\n" + json.dumps(payload) + "\n```"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def fake_provider(monkeypatch):
    """Replaces the openai backend with a canned chat model.

    Returns a dict recording every (api_key, model_name) the factory saw.
    Set ``calls["responses"]`` to change what the model answers.
    """
    calls = {"factory": [], "responses": [model_answer()]}

    def factory(api_key, model_name):
        calls["factory"].append((api_key, model_name))
        return FakeListChatModel(responses=calls["responses"])

    spec = providers.ProviderSpec("openai", "OpenAI (GPT Models)", "gpt-4o-mini", factory)
    monkeypatch.setitem(providers.PROVIDERS, "openai", spec)
    return calls

"""
Shared pytest fixtures for the Plano NEM test suite.
All fixtures use mock mode — no Gemini credentials required.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode — never call Gemini during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("GEMINI_API_KEY", "<placeholder>")


import pytest

from factories import make_plan, make_raw_plan, make_request

from plano_nem.config import get_settings
from plano_nem.layout import get_theme


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def theme():
    return get_theme("nem")


@pytest.fixture
def raw_plan():
    return make_raw_plan()


@pytest.fixture
def plan():
    return make_plan()


@pytest.fixture
def request_secundaria():
    return make_request()


@pytest.fixture
def minimal_plan():
    """Only the identity markers are present."""
    from plano_nem.normalizer import normalize_plan
    return normalize_plan({
        "titulo_proyecto": "X",
        "nombre_escuela": "Y",
        "nombre_docente": "Z",
        "fases_desarrollo": [],
    })

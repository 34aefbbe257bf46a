"""
Shared test configuration

Environment is set before the application package is imported so the
module-level settings and singletons pick up test values.
"""
import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="compliance-api-tests-")

os.environ.setdefault("OPENAI_API_KEY", "test_key")
os.environ.setdefault("NODE_ENV", "development")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EXPLANATION_CACHE_ENABLED"] = "false"
os.environ["DATA_DIR"] = os.path.join(_TEST_ROOT, "data")
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")

from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402

from compliance_api.schemas.knowledge import Chunk, HSCodeEntry  # noqa: E402
from compliance_api.services.cache_service import noop_cache_service  # noqa: E402
from compliance_api.services.knowledge_store import KnowledgeStore  # noqa: E402


VOCABULARY = ["telephone", "cotton", "shirt", "gold", "arms", "export", "policy", "chapter"]


class KeywordEmbeddingOracle:
    """Deterministic embedding: keyword counts plus a constant component"""

    def __init__(self, fail_on: str = None):
        self.fail_on = fail_on
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError("embedding backend error")
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]


class CannedExplanationOracle:
    """Explanation oracle returning fixed text, or failing on demand"""

    def __init__(self, text: str = "Restricted under current export policy.", error: Exception = None):
        self.text = text
        self.error = error
        self.prompts: List[str] = []

    async def explain(self, prompt: str, max_tokens: int = 100) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def embedding_oracle():
    return KeywordEmbeddingOracle()


@pytest.fixture
def explanation_oracle():
    return CannedExplanationOracle()


@pytest.fixture
def noop_cache_getter():
    async def getter():
        return noop_cache_service
    return getter


@pytest.fixture
def store(tmp_path):
    """Empty knowledge store backed by a temporary directory"""
    knowledge_store = KnowledgeStore(tmp_path / "embeddings-database.json", tmp_path / "item-to-hs-mapping.json")
    knowledge_store.load()
    return knowledge_store


@pytest.fixture
def sample_hs_codes() -> Dict[str, HSCodeEntry]:
    entries = [
        HSCodeEntry(code="85171200", description="Telephone sets", policy="Free"),
        HSCodeEntry(code="71081200", description="Gold in unwrought forms", policy="Restricted"),
        HSCodeEntry(code="93019000", description="Military arms", policy="Prohibited"),
        HSCodeEntry(code="61051000", description="Cotton shirts", policy="Free"),
    ]
    return {entry.code: entry for entry in entries}


@pytest.fixture
def sample_phrase_index() -> Dict[str, str]:
    return {
        "telephone sets": "85171200",
        "gold in unwrought forms": "71081200",
        "military arms": "93019000",
        "cotton shirts": "61051000",
    }


@pytest.fixture
async def populated_store(store, sample_hs_codes, sample_phrase_index):
    """Knowledge store holding the sample code table and two chunks"""
    chunks = [
        Chunk(id=0, content="Telephone sets are free to export.", embedding=[1.0, 0.0, 0.0]),
        Chunk(id=1, content="Gold exports require a licence.", embedding=[0.0, 1.0, 0.0]),
    ]
    await store.merge(sample_hs_codes, sample_phrase_index, chunks)
    return store


@pytest.fixture
def embedding_oracle_factory():
    return KeywordEmbeddingOracle

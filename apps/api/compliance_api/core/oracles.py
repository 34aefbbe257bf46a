"""
OpenAI-backed oracles for embeddings and compliance explanations

The services only depend on the two small protocols below, so tests can
substitute fixed vectors and canned text for the network clients.
"""
import asyncio
import logging
from typing import List, Optional, Protocol

from openai import AsyncOpenAI
from agents import Agent, ModelSettings, Runner, set_default_openai_key

from .config import settings
from .exceptions import OracleError


logger = logging.getLogger(__name__)

# Configure OpenAI API key for agents
if settings.OPENAI_API_KEY:
    set_default_openai_key(settings.OPENAI_API_KEY)


class EmbeddingOracle(Protocol):
    """Turns a piece of text into a fixed-length vector"""

    async def embed(self, text: str) -> List[float]:
        ...


class ExplanationOracle(Protocol):
    """Turns a prompt into a short human-readable rationale"""

    async def explain(self, prompt: str, max_tokens: int = 100) -> str:
        ...


class OpenAIEmbeddingOracle:
    """Embedding oracle backed by the OpenAI embeddings endpoint"""
    
    def __init__(
        self,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.timeout_seconds = timeout_seconds or settings.ORACLE_TIMEOUT_SECONDS
        self._client = client
    
    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise OracleError("OPENAI_API_KEY must be configured for embeddings")
            self._client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client
    
    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for a text
        
        Raises:
            OracleError: If the API call fails, times out or returns nothing
        """
        try:
            response = await asyncio.wait_for(
                self._get_client().embeddings.create(model=self.model, input=text),
                timeout=self.timeout_seconds
            )
        except OracleError:
            raise
        except asyncio.TimeoutError:
            raise OracleError(f"Embedding request timed out after {self.timeout_seconds} seconds")
        except Exception as e:
            raise OracleError(f"Embedding request failed: {str(e)}") from e
        
        if not response.data or not response.data[0].embedding:
            raise OracleError("Embedding response contained no vector")
        return list(response.data[0].embedding)


class OpenAIExplanationOracle:
    """Explanation oracle backed by an OpenAI Agents SDK agent"""
    
    AGENT_NAME = "Trade Compliance Explainer"
    AGENT_INSTRUCTIONS = """You are an export compliance specialist with deep knowledge of
Harmonized System (HS) tariff classification and national export/import policies.

Answer in one short plain-text paragraph. Do not use markdown, lists or headings.
If you are unsure, say what the trader should verify with the customs authority."""
    MODEL_TEMPERATURE = 0.2
    
    def __init__(self, model: Optional[str] = None, timeout_seconds: Optional[float] = None):
        self.model = model or settings.OPENAI_COMPLETION_MODEL
        self.timeout_seconds = timeout_seconds or settings.ORACLE_TIMEOUT_SECONDS
        self._agents_cache = {}
    
    def _get_agent(self, max_tokens: int) -> Agent:
        """Get or create an agent for the requested output budget"""
        if max_tokens not in self._agents_cache:
            self._agents_cache[max_tokens] = Agent(
                name=self.AGENT_NAME,
                instructions=self.AGENT_INSTRUCTIONS,
                model=self.model,
                model_settings=ModelSettings(
                    temperature=self.MODEL_TEMPERATURE,
                    max_tokens=max_tokens,
                )
            )
        return self._agents_cache[max_tokens]
    
    async def explain(self, prompt: str, max_tokens: int = 100) -> str:
        """
        Ask the model for a short rationale
        
        Raises:
            OracleError: If the agent run fails, times out or produces no text
        """
        if not settings.OPENAI_API_KEY:
            raise OracleError("OPENAI_API_KEY must be configured for explanations")
        
        agent = self._get_agent(max_tokens)
        try:
            result = await asyncio.wait_for(
                Runner.run(agent, prompt),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise OracleError(f"Explanation request timed out after {self.timeout_seconds} seconds")
        except Exception as e:
            raise OracleError(f"Explanation request failed: {str(e)}") from e
        
        text = str(getattr(result, "final_output", "") or "").strip()
        if not text:
            raise OracleError("Explanation response was empty")
        return text


embedding_oracle = OpenAIEmbeddingOracle()
explanation_oracle = OpenAIExplanationOracle()

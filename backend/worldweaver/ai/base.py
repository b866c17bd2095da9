from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from worldweaver.ai.llm_client import LLMClient
from worldweaver.core.config import settings

InType = TypeVar("InType", bound=BaseModel)
OutType = TypeVar("OutType", bound=BaseModel)

class BaseGenerator(ABC, Generic[InType, OutType]):
    """Abstract base class for the AI content generators.

    ``operation`` is the name recorded in AI usage rows.
    """

    operation: str = "generation"

    def __init__(self, model_name: str | None = None, llm: LLMClient | None = None):
        self.llm = llm or LLMClient(model_name=model_name or settings.MODEL_DEFAULT)

    @abstractmethod
    async def run(self, input_data: InType) -> OutType:
        """Run the generator on the given request."""
        pass

from .base import LLMClient
from .openai_client import OpenAICompatibleClient

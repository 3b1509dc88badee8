"""
Provider selection for the main chat reply.
"""

from typing import Dict, List

from .bedrock_llm import BedrockLLM, BedrockLLMError, to_bedrock_messages
from .config import PROVIDER_MODES
from .logging_config import get_logger

logger = get_logger(__name__)


class ModelRouter:
    """Route main-reply requests to the primary model, the fallback model, or both.

    Modes:
        primary: only the primary model is called
        fallback: only the fallback model is called
        hybrid: the primary model is tried first and any failure falls through to the fallback
    """

    def __init__(self, primary: BedrockLLM, fallback: BedrockLLM, mode: str = 'hybrid'):
        if mode not in PROVIDER_MODES:
            raise ValueError(f'Unknown provider mode: {mode}')
        self.primary = primary
        self.fallback = fallback
        self.mode = mode

    def _call(self, llm: BedrockLLM, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        bedrock_messages, system_texts = to_bedrock_messages(messages)
        if not bedrock_messages:
            raise BedrockLLMError('No user message to answer')

        full_prompt = '\n\n'.join([system_prompt, *system_texts])
        response, _ = llm.generate_response(messages=bedrock_messages, system_prompt=full_prompt)
        return response

    def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """
        Produce the main reply for a conversation.

        Args:
            system_prompt: System prompt including the memory context
            messages: Role-tagged chat messages, oldest first

        Returns:
            Reply text

        Raises:
            BedrockLLMError: If the selected provider(s) fail to produce a reply
        """
        if self.mode == 'primary':
            return self._call(self.primary, system_prompt, messages)
        if self.mode == 'fallback':
            return self._call(self.fallback, system_prompt, messages)

        try:
            return self._call(self.primary, system_prompt, messages)
        except Exception as e:
            logger.warning(f'Primary model {self.primary.model_id} failed, falling back to {self.fallback.model_id}: {e}')
            return self._call(self.fallback, system_prompt, messages)

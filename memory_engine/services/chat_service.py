"""
Chat orchestration: memory context in, normalized reply out, consolidation kicked off.
"""

from typing import Dict, List, Optional

from ..models.core import ChatResult, UserProfile
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.bedrock_llm import BedrockLLM
from ..utils.config import ChatConfig, MemoryConfig, config
from ..utils.logging_config import get_logger
from ..utils.model_router import ModelRouter
from ..utils.text_utils import strip_markdown, truncate
from .memory_management import MemoryConsolidationService
from .memory_store import MemoryStore
from .prompts import build_system_prompt
from .retrieval import RetrievalService

logger = get_logger(__name__)

INCOMPLETE_PAYLOAD_MESSAGE = 'Incomplete request payload.'
UNKNOWN_ACCOUNT_MESSAGE = 'Account not found.'
MODEL_FAILURE_MESSAGE = 'The assistant is having trouble thinking right now. Please try again in a moment.'


class ChatService:
    """Answer a chat turn with the user's memories in context."""

    def __init__(self,
                 store: Optional[MemoryStore] = None,
                 retrieval: Optional[RetrievalService] = None,
                 consolidation: Optional[MemoryConsolidationService] = None,
                 router: Optional[ModelRouter] = None,
                 memory_config: Optional[MemoryConfig] = None,
                 chat_config: Optional[ChatConfig] = None):
        """Initialize the chat service; collaborators are built from config when not given."""
        self.store = store or MemoryStore()
        self.memory_config = memory_config or config.memory
        self.chat_config = chat_config or config.chat

        # One embedding client shared by retrieval and consolidation
        embed = None
        if retrieval is None or consolidation is None:
            embed = BedrockEmbed(config.bedrock_embed)
        self.retrieval = retrieval or RetrievalService(store=self.store, embed=embed, memory_config=self.memory_config)
        self.consolidation = consolidation or MemoryConsolidationService(store=self.store,
                                                                         embed=embed,
                                                                         memory_config=self.memory_config,
                                                                         chat_config=self.chat_config)
        self.router = router or ModelRouter(BedrockLLM(config.bedrock_llm),
                                            BedrockLLM(config.bedrock_fallback_llm),
                                            mode=self.chat_config.provider_mode)

        logger.info('Initialized ChatService')

    def build_memory_block(self, name: str, user: UserProfile, query: str) -> str:
        """
        Assemble the context sections for the system prompt.

        Sections, each only when non-empty, separated by blank lines: weekly
        goal, last conversation, life memories, memories relevant to the query.
        """
        sections: List[str] = []

        if user.weekly_goal:
            sections.append(f'Current weekly goal: "{user.weekly_goal}"')

        if user.last_question or user.last_response:
            max_chars = self.memory_config.last_conversation_max_chars
            question = truncate(user.last_question, max_chars) or '(no record of the last question)'
            answer = truncate(user.last_response, max_chars) or '(no record of the last answer)'
            sections.append(f'Last conversation:\n- {name}: {question}\n- {self.chat_config.assistant_name}: {answer}')

        recent = self.store.recent_long_term_memories(user.id) if user.id else []
        life_memory = '\n'.join(part for part in [user.long_term_memory, '\n'.join(recent)] if part)
        if life_memory:
            sections.append(f'Life memories and patterns so far:\n{life_memory}')

        retrieved = self.retrieval.retrieve(user.id, query)
        if retrieved:
            sections.append(f'Memories relevant to this topic:\n{retrieved}')

        return '\n\n'.join(sections)

    def reply(self, name: str, email: str, messages: List[Dict[str, str]], mode: Optional[str] = None) -> ChatResult:
        """
        Answer the latest message of a conversation.

        Args:
            name: User display name
            email: User identity, key of the user record
            messages: Role-tagged messages, oldest first
            mode: Optional conversation mode, defaults to the user's preferred mode

        Returns:
            ChatResult with the reply, or ok=False with a user-facing failure message
        """
        if not messages or not isinstance(messages, list) or not name or not email:
            return ChatResult(message=INCOMPLETE_PAYLOAD_MESSAGE, ok=False)
        if not all(isinstance(message, dict) for message in messages):
            return ChatResult(message=INCOMPLETE_PAYLOAD_MESSAGE, ok=False)

        user = self.store.get_user(email)
        if user is None:
            return ChatResult(message=UNKNOWN_ACCOUNT_MESSAGE, ok=False)

        last_user_message = messages[-1].get('content') or ''
        memory_block = self.build_memory_block(name, user, last_user_message)
        system_prompt = build_system_prompt(name, self.chat_config.assistant_name, mode or user.preferred_mode,
                                            memory_block)

        try:
            ai_message = self.router.generate(system_prompt, messages)
        except Exception as e:
            logger.error(f'Main model error: {e}')
            return ChatResult(message=MODEL_FAILURE_MESSAGE, ok=False)

        ai_message = strip_markdown(ai_message)

        self.store.save_last_exchange(email, last_user_message, ai_message)

        try:
            self.consolidation.submit(user_id=user.id,
                                      user_name=name,
                                      email=email,
                                      prior_summary=user.long_term_memory,
                                      user_message=last_user_message,
                                      ai_message=ai_message)
        except RuntimeError as e:
            # Executor already shut down
            logger.error(f'Could not schedule memory consolidation: {e}')

        return ChatResult(message=ai_message)

"""
Insight and episodic event extraction with the summarizer LLM.
"""

import re
from typing import List, Optional

from ..models.core import EpisodicEvent
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import ChatConfig, MemoryConfig, config
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# The summary may start on the line after its label, but never on the TAGS line
SUMMARY_LABEL = re.compile(r'SUMMARY:\s*(?!\**TAGS:)(.+)', re.IGNORECASE)
TAGS_LABEL = re.compile(r'TAGS:[ \t]*(.*)', re.IGNORECASE)
LEADING_BULLET = re.compile(r'^\s*[-•*]\s*')


class EpisodeFormatError(ValueError):
    """The summarizer reply has no usable SUMMARY line."""
    pass


def parse_episode(raw: str) -> EpisodicEvent:
    """Parse a 'SUMMARY: ... / TAGS: a, b, c' reply.

    Args:
        raw: Summarizer reply text

    Returns:
        EpisodicEvent; tags may be empty

    Raises:
        EpisodeFormatError: If the SUMMARY label is missing or its value is empty
    """
    summary_match = SUMMARY_LABEL.search(raw or '')
    summary = summary_match.group(1).strip().strip('*').strip() if summary_match else ''
    if not summary:
        raise EpisodeFormatError('SUMMARY label missing or empty')

    tags_match = TAGS_LABEL.search(raw)
    tags_raw = tags_match.group(1).strip('*') if tags_match else ''
    tags: List[str] = [tag.strip() for tag in tags_raw.split(',') if tag.strip()]

    return EpisodicEvent(summary=summary, tags=tags)


def clean_insight(raw: str) -> str:
    """Strip a leading bullet marker; returns '' for an empty reply."""
    return LEADING_BULLET.sub('', (raw or '').strip(), count=1).strip()


class MemoryExtractionService:
    """Distill one exchange into an insight bullet and an episodic event."""

    def __init__(self,
                 llm: Optional[BedrockLLM] = None,
                 memory_config: Optional[MemoryConfig] = None,
                 chat_config: Optional[ChatConfig] = None):
        """Initialize the extraction service."""
        self.llm = llm or BedrockLLM(config.bedrock_summarizer_llm)
        self.memory_config = memory_config or config.memory
        self.chat_config = chat_config or config.chat

        logger.info('Initialized MemoryExtractionService')

    def can_extract(self, user_message: str, ai_message: str) -> bool:
        """Whether an exchange is worth summarizing and the summarizer is usable.

        Short replies (under min_reply_length characters) are skipped.
        """
        if not user_message or not ai_message:
            return False
        if len(ai_message) < self.memory_config.min_reply_length:
            return False
        return self.llm.has_credentials()

    def extract_insight(self, user_name: str, prior_summary: str, user_message: str, ai_message: str) -> Optional[str]:
        """
        Derive one distilled fact about the user from an exchange.

        Args:
            user_name: User display name
            prior_summary: Long-term narrative so far
            user_message: Latest user message
            ai_message: Assistant reply to it

        Returns:
            The insight as a '- ' bullet, or None when nothing could be extracted
        """
        if not self.can_extract(user_message, ai_message):
            return None

        assistant = self.chat_config.assistant_name
        system_prompt = f"""Write ONE bullet insight about {user_name}.
Focus on values, worries, hopes, or thinking patterns.
Short, neutral, third person, no emoji, no greeting."""

        user_prompt = f"""Previous memory:
{prior_summary}

Message from {user_name}:
{user_message}

Reply from {assistant}:
{ai_message}"""

        try:
            response = self.llm.complete(system_prompt, user_prompt)
        except BedrockLLMError as e:
            logger.warning(f'Insight extraction failed: {e}')
            return None
        except Exception as e:
            logger.error(f'Unexpected error in insight extraction: {e}')
            return None

        insight = clean_insight(response)
        if not insight:
            return None

        logger.debug(f'Extracted insight for {user_name}')
        return f'- {insight}'

    def extract_episode(self, user_name: str, user_message: str, ai_message: str) -> Optional[EpisodicEvent]:
        """
        Summarize an exchange as one tagged life event.

        Args:
            user_name: User display name
            user_message: Latest user message
            ai_message: Assistant reply to it

        Returns:
            EpisodicEvent, or None when the summarizer failed or replied in the wrong format
        """
        if not self.can_extract(user_message, ai_message):
            return None

        assistant = self.chat_config.assistant_name
        system_prompt = f"""Summarize the following exchange as ONE event in the life of {user_name}.
Give:
1) A short summary (at most 2 sentences).
2) 3-5 keyword tags (no emoji).

Format:
SUMMARY: ...
TAGS: tag1, tag2, tag3"""

        user_prompt = f"""Message from {user_name}:
{user_message}

Reply from {assistant}:
{ai_message}"""

        try:
            response = self.llm.complete(system_prompt, user_prompt)
            episode = parse_episode(response)
        except EpisodeFormatError as e:
            logger.warning(f'Unusable episodic reply: {e}')
            return None
        except BedrockLLMError as e:
            logger.warning(f'Episodic extraction failed: {e}')
            return None
        except Exception as e:
            logger.error(f'Unexpected error in episodic extraction: {e}')
            return None

        logger.debug(f'Extracted episode with {len(episode.tags)} tags for {user_name}')
        return episode

"""
Amazon Bedrock LLM client wrapper with retry logic and error handling.
"""

import json
import random
import time
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockLLMError(Exception):
    """Custom exception for Bedrock LLM errors."""
    pass


def to_bedrock_messages(messages: List[Dict[str, str]]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Convert role-tagged chat messages to the Converse API shape.

    System messages are pulled out so they can be appended to the system
    prompt, empty messages are dropped and consecutive messages with the same
    role are merged, because Converse requires alternating turns that start
    with a user turn.

    Args:
        messages: List of message dicts with 'role' and 'content' keys

    Returns:
        Tuple of (bedrock_messages, system_texts)
    """
    converted: List[Dict[str, Any]] = []
    system_texts: List[str] = []

    for msg in messages:
        role = msg.get('role')
        content = (msg.get('content') or '').strip()
        if not content:
            continue
        if role == 'system':
            system_texts.append(content)
            continue
        if role not in ('user', 'assistant'):
            continue

        if converted and converted[-1]['role'] == role:
            converted[-1]['content'][0]['text'] += f'\n\n{content}'
        else:
            converted.append({'role': role, 'content': [{'text': content}]})

    while converted and converted[0]['role'] != 'user':
        converted.pop(0)

    return converted, system_texts


class BedrockLLM:
    """Amazon Bedrock LLM client with retry logic and error handling."""

    def __init__(self, config: BedrockLLMConfig, session: Optional[boto3.Session] = None):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
            session: boto3 session to use (a new one for the configured region if None)
        """
        self.config = config
        self.model_id = config.model_id

        self.session = session or boto3.Session(region_name=config.region)
        self.bedrock_runtime = self.session.client(
            'bedrock-runtime',
            region_name=config.region,
            config=BotoConfig(
                connect_timeout=600,
                read_timeout=600,
                retries={'max_attempts': 0}  # We handle retries manually
            ))

        logger.info(f'Initialized Bedrock LLM client with model: {self.model_id}')

    def has_credentials(self) -> bool:
        """Return whether AWS credentials are available to sign requests."""
        try:
            return self.session.get_credentials() is not None
        except BotoCoreError as e:
            logger.warning(f'Could not resolve AWS credentials: {e}')
            return False

    def generate_response(self,
                          messages: List[Dict[str, Any]],
                          system_prompt: str,
                          max_tokens: Optional[int] = None,
                          temperature: Optional[float] = None,
                          stop_sequences: Optional[List[str]] = None) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Generate response using Bedrock LLM with retry logic.

        Args:
            messages: List of message dictionaries in Bedrock format
            system_prompt: System prompt for the conversation
            max_tokens: Maximum tokens to generate (uses config default if None)
            temperature: Temperature for generation (uses config default if None)
            stop_sequences: Stop sequences for generation

        Returns:
            Tuple of (response_text, invoke_metrics), response_text is stripped and non-empty

        Raises:
            BedrockLLMError: If credentials are missing, all attempts fail or the reply is empty
        """
        if not self.has_credentials():
            raise BedrockLLMError('No AWS credentials available for Bedrock LLM')

        max_tokens = max_tokens if max_tokens is not None else self.config.max_tokens
        temperature = temperature if temperature is not None else self.config.temperature
        stop_sequences = stop_sequences or []

        system = [{'text': system_prompt}]
        inf_params = {
            'maxTokens': max_tokens,
            'temperature': temperature,
            'stopSequences': stop_sequences,
        }

        attempts = max(1, self.config.retry_attempts)
        for attempt in range(attempts):
            try:
                logger.debug(f'Bedrock LLM request attempt {attempt + 1}/{attempts} ({self.model_id})')

                stream = self.bedrock_runtime.converse_stream(modelId=self.model_id,
                                                              messages=messages,
                                                              system=system,
                                                              inferenceConfig=inf_params).get('stream')

                msg = ''
                invoke_metrics = None

                if stream:
                    for event in stream:
                        if 'contentBlockDelta' in event:
                            msg += event['contentBlockDelta']['delta'].get('text', '')
                        if 'metadata' in event:
                            invoke_metrics = {**event['metadata'].get('usage', {}), **event['metadata'].get('metrics', {})}

                msg = msg.strip()
                if not msg:
                    raise BedrockLLMError(f'Bedrock LLM {self.model_id} returned an empty response')

                logger.debug(f'Bedrock LLM response generated successfully (length: {len(msg)})')
                return msg, invoke_metrics

            except BedrockLLMError:
                raise
            except (ClientError, BotoCoreError, json.JSONDecodeError) as e:
                logger.warning(f'Bedrock LLM attempt {attempt + 1}/{attempts} failed: {e}')

                if attempt < attempts - 1:
                    # Exponential backoff with jitter
                    delay = self.config.retry_delay * (2**attempt) + random.uniform(0, 1)
                    time.sleep(delay)
                else:
                    raise BedrockLLMError(f'Bedrock LLM failed after {attempts} attempts: {e}')

            except Exception as e:
                logger.error(f'Unexpected error in Bedrock LLM: {e}')
                raise BedrockLLMError(f'Unexpected Bedrock LLM error: {e}')

        raise BedrockLLMError(f'Bedrock LLM failed after {attempts} attempts')

    def complete(self, system_prompt: str, user_prompt: str, temperature: Optional[float] = None) -> str:
        """Single-turn helper: one user message in, reply text out.

        Raises:
            BedrockLLMError: As generate_response
        """
        messages = [{'role': 'user', 'content': [{'text': user_prompt}]}]
        response, _ = self.generate_response(messages=messages, system_prompt=system_prompt, temperature=temperature)
        return response

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            test_messages = [{'role': 'user', 'content': [{'text': 'Hi'}]}]
            response, _ = self.generate_response(messages=test_messages,
                                                 system_prompt="You are a helpful assistant. Respond with just 'OK'.",
                                                 max_tokens=10,
                                                 temperature=0.0)
            return len(response.strip()) > 0

        except Exception as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False

"""
Amazon Bedrock embedding client wrapper with best-effort error handling.
"""

import json
from numbers import Real
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockEmbedConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockEmbed:
    """Amazon Bedrock embedding client.

    Embeddings only enrich the chat context, so every failure is reported as
    None instead of an exception and no call is ever retried.
    """

    def __init__(self, config: BedrockEmbedConfig, session: Optional[boto3.Session] = None):
        """
        Initialize Bedrock embedding client.

        Args:
            config: BedrockEmbedConfig instance with connection parameters
            session: boto3 session to use (a new one for the configured region if None)
        """
        self.config = config
        self.model_id = config.model_id
        self.output_embedding_length = config.dimension

        self.session = session or boto3.Session(region_name=config.region)
        self.bedrock = self.session.client(service_name='bedrock-runtime', region_name=config.region)

        logger.info(f'Initialized Bedrock Embed client with model: {self.model_id}')

    def has_credentials(self) -> bool:
        """Return whether AWS credentials are available to sign requests."""
        try:
            return self.session.get_credentials() is not None
        except BotoCoreError as e:
            logger.warning(f'Could not resolve AWS credentials: {e}')
            return False

    def _build_request(self, text: str, is_query: bool) -> dict:
        if 'cohere' in self.model_id.lower():
            return {'input_type': 'search_query' if is_query else 'search_document', 'texts': [text]}
        return {'inputText': text, 'dimensions': self.output_embedding_length, 'normalize': True}

    def _extract_vector(self, payload: Any) -> Optional[List[float]]:
        """Pull the vector out of a Titan or Cohere response body."""
        if not isinstance(payload, dict):
            return None

        if 'cohere' in self.model_id.lower():
            embeddings = payload.get('embeddings')
            vector = embeddings[0] if isinstance(embeddings, list) and embeddings else None
        else:
            vector = payload.get('embedding')

        if not isinstance(vector, list) or not vector:
            return None
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in vector):
            return None
        if len(vector) != self.output_embedding_length:
            logger.warning(f'Embedding has {len(vector)} dimensions, expected {self.output_embedding_length}')
            return None

        return [float(v) for v in vector]

    def embed(self, text: str, is_query: bool = False) -> Optional[List[float]]:
        """
        Generate an embedding for one text.

        Args:
            text: Text to embed
            is_query: Whether the text is a search query rather than a stored document

        Returns:
            List of embedding values, or None when no vector could be produced
        """
        cleaned = (text or '').strip()
        if not cleaned:
            return None

        if not self.has_credentials():
            logger.debug('No AWS credentials available, skipping embedding')
            return None

        try:
            response = self.bedrock.invoke_model(body=json.dumps(self._build_request(cleaned, is_query)),
                                                 modelId=self.model_id,
                                                 accept='application/json',
                                                 contentType='application/json')
            payload = json.loads(response.get('body').read())

        except (ClientError, BotoCoreError) as e:
            logger.error(f'Bedrock Embed request failed: {e}')
            return None
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.error(f'Malformed Bedrock Embed response: {e}')
            return None
        except Exception as e:
            logger.error(f'Unexpected error in Bedrock Embed: {e}')
            return None

        vector = self._extract_vector(payload)
        if vector is None:
            logger.error('Bedrock Embed response did not contain a usable vector')
        return vector

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock embedding service.

        Returns:
            True if service is healthy, False otherwise
        """
        test_embedding = self.embed('health check')
        return test_embedding is not None and len(test_embedding) == self.output_embedding_length

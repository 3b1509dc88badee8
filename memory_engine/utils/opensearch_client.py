"""
OpenSearch client wrapper used as the durable memory store.
"""

from typing import Any, Dict, List, Optional

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection, helpers
from opensearchpy.exceptions import NotFoundError, OpenSearchException

from .config import OpenSearchConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class OpenSearchError(Exception):
    """Custom exception for OpenSearch errors."""
    pass


class OpenSearchClient:
    """OpenSearch client with AWS authentication and error handling."""

    def __init__(self, config: OpenSearchConfig, client: Optional[OpenSearch] = None):
        """
        Initialize OpenSearch client.

        Args:
            config: OpenSearchConfig instance with connection parameters
            client: Pre-built opensearch-py client (built from config if None)
        """
        self.config = config

        if client is None:
            client = self._build_client(config)
        self.client = client

        logger.info(f'Initialized OpenSearch client for endpoint: {config.endpoint}')

    @staticmethod
    def _build_client(config: OpenSearchConfig) -> OpenSearch:
        # Get AWS credentials and create auth
        credentials = boto3.Session().get_credentials()
        auth = AWSV4SignerAuth(credentials, config.region, config.service)
        # Parse endpoint to get host and port
        endpoint = config.endpoint
        if '://' in endpoint:
            # Remove protocol if present
            endpoint = endpoint.split('://', 1)[1]

        return OpenSearch(hosts=[{
            'host': endpoint,
            'port': config.port
        }],
                          http_auth=auth,
                          use_ssl=True,
                          verify_certs=True,
                          connection_class=RequestsHttpConnection)

    def index_name(self, kind: str) -> str:
        """Full index name for a record kind, e.g. 'life_memory_users'."""
        return f'{self.config.index_prefix}_{kind}'

    def create_index_if_not_exists(self, index_name: str, properties: Dict[str, Any]) -> str:
        """
        Create index with the given field mappings if it doesn't exist.

        Args:
            index_name: Name of the index
            properties: Field mappings for the index

        Returns:
            'exists', 'created' or 'failed'
        """
        try:
            if self.client.indices.exists(index=index_name):
                logger.debug(f'Index {index_name} already exists')
                return 'exists'

            response = self.client.indices.create(index=index_name, body={'mappings': {'properties': properties}})
            if response.get('acknowledged', False):
                logger.info(f'Created index {index_name}')
                return 'created'
            return 'failed'

        except OpenSearchException as e:
            logger.error(f'Error creating index {index_name}: {e}')
            raise OpenSearchError(f'Failed to create index: {e}')
        except Exception as e:
            logger.error(f'Unexpected error creating index {index_name}: {e}')
            raise OpenSearchError(f'Unexpected error creating index: {e}')

    def index_document(self, index_name: str, document: Dict[str, Any], doc_id: Optional[str] = None) -> Optional[str]:
        """
        Index a document in OpenSearch.

        Args:
            index_name: Name of the index
            document: Document to index
            doc_id: Explicit document id (assigned by OpenSearch if None)

        Returns:
            The document id when indexing succeeded, None otherwise
        """
        try:
            if doc_id is None:
                response = self.client.index(index=index_name, body=document)
            else:
                response = self.client.index(index=index_name, body=document, id=doc_id)

            if response.get('result') in ['created', 'updated']:
                logger.debug(f'Indexed document in {index_name}')
                return response.get('_id')

            logger.warning(f'Unexpected result indexing document: {response}')
            return None

        except OpenSearchException as e:
            logger.error(f'Error indexing document: {e}')
            raise OpenSearchError(f'Failed to index document: {e}')
        except Exception as e:
            logger.error(f'Unexpected error indexing document: {e}')
            raise OpenSearchError(f'Unexpected error indexing document: {e}')

    def bulk_index(self, index_name: str, documents: List[Dict[str, Any]]) -> int:
        """
        Index several documents in one bulk request.

        Args:
            index_name: Name of the index
            documents: Documents to index

        Returns:
            Number of documents indexed
        """
        if not documents:
            return 0

        actions = [{'_index': index_name, '_source': document} for document in documents]
        try:
            success, _ = helpers.bulk(self.client, actions)
            logger.debug(f'Bulk indexed {success} documents in {index_name}')
            return success

        except OpenSearchException as e:
            logger.error(f'Error bulk indexing documents: {e}')
            raise OpenSearchError(f'Failed to bulk index documents: {e}')
        except Exception as e:
            logger.error(f'Unexpected error bulk indexing documents: {e}')
            raise OpenSearchError(f'Unexpected error bulk indexing documents: {e}')

    def recent_documents(self,
                         index_name: str,
                         user_id: str,
                         size: int,
                         fields: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Fetch one user's most recent documents, newest first.

        Args:
            index_name: Name of the index
            user_id: User ID to filter results
            size: Maximum number of documents
            fields: Source fields to return (all if None)

        Returns:
            List of document sources
        """
        search_body: Dict[str, Any] = {
            'size': size,
            'query': {
                'bool': {
                    'filter': [{
                        'term': {
                            'user_id': user_id
                        }
                    }]
                }
            },
            'sort': [{
                'created_at': {
                    'order': 'desc'
                }
            }]
        }
        if fields is not None:
            search_body['_source'] = fields

        try:
            response = self.client.search(index=index_name, body=search_body)
            results = [hit['_source'] for hit in response['hits']['hits']]

            logger.debug(f'Recent search returned {len(results)} documents for user {user_id}')
            return results

        except OpenSearchException as e:
            logger.error(f'Error performing recent search: {e}')
            raise OpenSearchError(f'Recent search failed: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in recent search: {e}')
            raise OpenSearchError(f'Unexpected error in recent search: {e}')

    def get_document(self, index_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a document source by id.

        Args:
            index_name: Name of the index
            doc_id: Document id

        Returns:
            Document source if found, None otherwise
        """
        try:
            response = self.client.get(index=index_name, id=doc_id)
            if not response.get('found', False):
                return None
            return response['_source']

        except NotFoundError:
            return None
        except OpenSearchException as e:
            logger.error(f'Error getting document {doc_id}: {e}')
            raise OpenSearchError(f'Failed to get document: {e}')
        except Exception as e:
            logger.error(f'Unexpected error getting document {doc_id}: {e}')
            raise OpenSearchError(f'Unexpected error getting document: {e}')

    def update_document(self, index_name: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """
        Partially update a document, replacing the given fields.

        Args:
            index_name: Name of the index
            doc_id: Document id
            fields: Fields to overwrite

        Returns:
            True if the document was updated (or already held these values), False otherwise
        """
        try:
            response = self.client.update(index=index_name, id=doc_id, body={'doc': fields})

            success = response.get('result') in ['updated', 'noop']
            if not success:
                logger.warning(f'Unexpected result updating document {doc_id}: {response}')
            return success

        except NotFoundError:
            logger.warning(f'Document {doc_id} not found for update')
            return False
        except OpenSearchException as e:
            logger.error(f'Error updating document {doc_id}: {e}')
            raise OpenSearchError(f'Failed to update document: {e}')
        except Exception as e:
            logger.error(f'Unexpected error updating document {doc_id}: {e}')
            raise OpenSearchError(f'Unexpected error updating document: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the OpenSearch service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.client.indices.exists(index=self.index_name('users'))

            return response in [True, False]

        except Exception as e:
            logger.error(f'OpenSearch health check failed: {e}')
            return False

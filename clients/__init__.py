# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_valkey_url,
    get_google_oauth_config,
)
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.document_store import (
    DocumentStore,
    DocumentNotFoundError,
    MemoryDocumentStore,
    PostgresDocumentStore,
)

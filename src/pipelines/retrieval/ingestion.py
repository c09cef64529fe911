"""
Knowledge base ingestion.

Loads the terms-of-service document, splits it into overlapping chunks and
writes them to the configured vector store at startup. A smoke search is run
afterwards so a misconfigured store shows up in the startup log rather than on
the first customer question.
"""

import hashlib
from pathlib import Path
from typing import List, Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore, VectorStore
from langchain_openai import OpenAIEmbeddings
from langchain_text_splitters import RecursiveCharacterTextSplitter

from .config import RetrievalSettings
from .exceptions import ConfigurationError, IngestionError
from .logging import RetrievalLoggerMixin, log_retrieval_operation


def build_embeddings(settings: RetrievalSettings) -> Embeddings:
    """Create the OpenAI embeddings model described by ``settings``."""
    if not settings.openai_api_key:
        raise ConfigurationError(
            "OpenAI API key is required for embeddings. "
            "Please set OPENAI_API_KEY environment variable.",
            missing_keys=["OPENAI_API_KEY"]
        )
    return OpenAIEmbeddings(
        model=settings.embedding_model,
        openai_api_key=settings.openai_api_key
    )


def build_vector_store(
    settings: RetrievalSettings,
    embeddings: Optional[Embeddings] = None
) -> VectorStore:
    """
    Create the vector store backend named by ``settings.vector_store``.

    Raises:
        ConfigurationError: If required keys for the backend are missing
    """
    embeddings = embeddings or build_embeddings(settings)

    if settings.vector_store == "pinecone":
        if not settings.pinecone_api_key:
            raise ConfigurationError(
                "Pinecone API key is required when vector_store is 'pinecone'. "
                "Please set PINECONE_API_KEY environment variable.",
                missing_keys=["PINECONE_API_KEY"]
            )
        from langchain_pinecone import PineconeVectorStore

        return PineconeVectorStore(
            index_name=settings.pinecone_index_name,
            embedding=embeddings,
            namespace=settings.pinecone_namespace,
            pinecone_api_key=settings.pinecone_api_key
        )

    return InMemoryVectorStore(embedding=embeddings)


class KnowledgeIngestor(RetrievalLoggerMixin):
    """
    Loads policy documents into a vector store.

    Chunk ids are derived from the source path and chunk content, so
    re-ingesting the same document into a persistent store overwrites
    instead of duplicating.
    """

    def __init__(self, vector_store: VectorStore, settings: RetrievalSettings):
        self.vector_store = vector_store
        self.settings = settings
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            separators=["\n\n", "\n", ". ", " ", ""]
        )

    def load_documents(self, path: Optional[str] = None) -> List[Document]:
        """
        Read the knowledge file and split it into chunk documents.

        Raises:
            IngestionError: If the file is missing or empty
        """
        source = Path(path or self.settings.knowledge_path)
        if not source.exists():
            raise IngestionError(f"Knowledge file not found: {source}", source=str(source))

        text = source.read_text(encoding="utf-8")
        if not text.strip():
            raise IngestionError(f"Knowledge file is empty: {source}", source=str(source))

        chunks = self.splitter.split_documents(
            [Document(page_content=text, metadata={"source": str(source)})]
        )
        for chunk_idx, chunk in enumerate(chunks):
            chunk.metadata.update({
                "chunk_index": chunk_idx,
                "total_chunks": len(chunks)
            })

        self.logger.info(f"Split {source} into {len(chunks)} chunks")
        return chunks

    @log_retrieval_operation("knowledge_ingestion")
    def ingest(self, path: Optional[str] = None) -> List[str]:
        """
        Load, split and store the knowledge document.

        Returns:
            Ids of the stored chunks

        Raises:
            IngestionError: If loading or storing fails
        """
        documents = self.load_documents(path)
        ids = [self._document_id(doc) for doc in documents]

        try:
            stored_ids = self.vector_store.add_documents(documents=documents, ids=ids)
        except Exception as e:
            raise IngestionError(
                f"Failed to store knowledge chunks: {e}",
                source=path or self.settings.knowledge_path
            ) from e

        self.smoke_search()
        return list(stored_ids)

    def smoke_search(self) -> int:
        """Run the configured smoke query and log how many chunks it hits."""
        results = self.vector_store.similarity_search(
            self.settings.smoke_query, k=self.settings.top_k
        )
        self.logger.info(
            f"Smoke search '{self.settings.smoke_query}' returned {len(results)} chunks",
            extra={'extra_fields': {
                'smoke_query': self.settings.smoke_query,
                'results_count': len(results)
            }}
        )
        return len(results)

    @staticmethod
    def _document_id(document: Document) -> str:
        key = f"{document.metadata.get('source', '')}:{document.page_content}"
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

from core.rag.indexer import ProductIndexer
from core.rag.keyword_store import KeywordStore
from core.rag.retrieval_service import RetrievalService
from core.rag.vector_index import VectorIndexClient
from libs.factory import infra_registry


def get_retrieval_service() -> RetrievalService:
    """获取全局检索编排器"""
    return infra_registry.get_services().retrieval_service


def get_vector_index() -> VectorIndexClient:
    """获取向量索引客户端"""
    return infra_registry.get_services().vector_index


def get_indexer() -> ProductIndexer:
    """获取商品向量导入器"""
    return infra_registry.get_services().indexer


def get_keyword_store() -> KeywordStore:
    return infra_registry.get_services().keyword_store

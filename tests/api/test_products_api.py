"""
商品检索API端点测试

通过依赖覆盖注入模拟服务，不启动应用生命周期。
"""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from config.rag_config import rag_config
from controllers.dependencies import (
    get_indexer,
    get_keyword_store,
    get_retrieval_service,
    get_vector_index,
)
from core.rag.indexer import IndexStats
from libs.exceptions import SearchUnavailableException
from libs.types import MatchType
from main import app
from models import RankedResult, SearchOutcome
from tests.conftest import make_image_bytes, make_product


def outcome_with(*product_ids: str, **kwargs) -> SearchOutcome:
    return SearchOutcome(
        results=[
            RankedResult(
                product_id=pid,
                match_type=MatchType.EXACT,
                position=i,
                product=make_product(pid, f"Item {pid}", price=9.5)
            )
            for i, pid in enumerate(product_ids)
        ],
        elapsed_ms=12.345,
        **kwargs
    )


@pytest.fixture
def retrieval_service():
    service = MagicMock()
    service.search_by_text = AsyncMock(return_value=outcome_with("p1", "p2"))
    service.search_by_image = AsyncMock(return_value=outcome_with("p3", fallback_used=True))
    return service


@pytest.fixture
def client(retrieval_service):
    vector_index = MagicMock()
    vector_index.stats = AsyncMock(return_value={
        "collection_name": "multimodal_collection", "state": "loaded", "row_count": 7
    })
    indexer = MagicMock()
    indexer.index_products = AsyncMock(return_value=IndexStats(total=1, indexed=1))
    indexer.reset_collection = AsyncMock()
    keyword_store = MagicMock()
    keyword_store.resolve = AsyncMock(return_value={"p1": make_product("p1", "Red Shirt")})

    app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service
    app.dependency_overrides[get_vector_index] = lambda: vector_index
    app.dependency_overrides[get_indexer] = lambda: indexer
    app.dependency_overrides[get_keyword_store] = lambda: keyword_store
    # 不进入 with 块，避免触发生命周期中的外部连接
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestTextSearchEndpoint:
    """测试文本检索端点"""

    def test_search(self, client, retrieval_service):
        response = client.get("/v1/products/search", params={"keyword": "shirt", "limit": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [item["product_id"] for item in body["data"]] == ["p1", "p2"]
        assert body["data"][0]["name"] == "Item p1"
        assert body["data"][0]["match_type"] == "exact"
        assert body["degraded"] is False
        retrieval_service.search_by_text.assert_awaited_once_with("shirt", 5)

    def test_empty_result_is_success(self, client, retrieval_service):
        retrieval_service.search_by_text.return_value = SearchOutcome()

        body = client.get("/v1/products/search", params={"keyword": "nothing"}).json()

        assert body["success"] is True
        assert body["count"] == 0
        assert body["data"] == []

    def test_invalid_limit(self, client):
        response = client.get("/v1/products/search", params={"keyword": "shirt", "limit": 0})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_search_unavailable(self, client, retrieval_service):
        retrieval_service.search_by_text.side_effect = SearchUnavailableException("all branches failed")

        response = client.get("/v1/products/search", params={"keyword": "shirt"})

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == 3000007
        assert body["message"] == "SEARCH_UNAVAILABLE"


class TestImageSearchEndpoint:
    """测试以图搜图端点"""

    def test_image_search(self, client, retrieval_service):
        image_bytes = make_image_bytes()
        payload = "data:image/png;base64," + base64.b64encode(image_bytes).decode()

        response = client.post("/v1/products/image-search", json={"image": payload, "limit": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["fallback_used"] is True
        retrieval_service.search_by_image.assert_awaited_once_with(image_bytes, 3)

    @pytest.mark.parametrize("image", ["data:image/bmp;base64,aGVsbG8=", "%%%"])
    def test_invalid_image_payload(self, client, retrieval_service, image):
        response = client.post("/v1/products/image-search", json={"image": image})

        assert response.status_code == 400
        assert response.json()["code"] == 3000001
        retrieval_service.search_by_image.assert_not_awaited()

    def test_oversized_image_payload(self, client, retrieval_service):
        """超过大小上限的图片载荷直接返回400"""
        payload = base64.b64encode(b"\0" * (rag_config.IMAGE_MAX_BYTES + 3)).decode()

        response = client.post("/v1/products/image-search", json={"image": payload})

        assert response.status_code == 400
        assert "超过上限" in response.json()["detail"]
        retrieval_service.search_by_image.assert_not_awaited()


class TestIndexEndpoints:

    def test_index_stats(self, client):
        body = client.get("/v1/products/index/stats").json()

        assert body == {"collection_name": "multimodal_collection", "state": "loaded", "row_count": 7}

    def test_index_products_reports_missing(self, client):
        response = client.post("/v1/products/index", json={"source_ids": ["p1", "ghost"]})

        assert response.status_code == 200
        body = response.json()
        assert body["indexed"] == 1
        assert body["missing"] == ["ghost"]


class TestHealthEndpoint:

    def test_health_without_services(self, client):
        """服务未初始化时仍返回200，状态为降级"""
        body = client.get("/v1/health").json()

        assert body["status"] == "degraded"
        assert body["vector_index"] is False
        assert body["embedding_model"] is False

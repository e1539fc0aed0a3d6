"""
向量索引客户端

管理单个Milvus集合（文本向量 + 图片向量 + JSON元数据）的生命周期和读写。

集合状态: Absent -> Created -> Loaded
- ensure_collection: 幂等地建表、建索引并加载
- insert + flush: 只有 flush 之后新行才保证对检索可见
- search: 按向量字段检索，按相似度降序返回
- drop: 仅供重置/维护流程使用

建表/删表与写入通过读写守卫串行化，写入之间互不阻塞。
"""

import asyncio
import math
import random
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from pydantic import ValidationError
from pymilvus import DataType, MilvusClient, MilvusException

from config import app_config
from config.rag_config import rag_config
from libs.exceptions import (
    DependencyUnavailableException,
    InvalidInputException,
    VectorIndexNotReadyException
)
from libs.types import CollectionState, VectorField
from models import EmbeddingRecord, SearchHit, VectorMetadata
from utils import get_component_logger, get_current_timestamp_ms

logger = get_component_logger(__name__, "VectorIndexClient")


class RecordIdGenerator:
    """
    向量记录主键生成器

    毫秒时间戳 × 1000 加随机后缀，并保证在进程内严格递增，
    同一毫秒内的多次写入不会产生相同主键。
    """

    def __init__(self):
        self._last = 0

    def next_id(self) -> int:
        candidate = get_current_timestamp_ms() * 1000 + random.randrange(1000)
        self._last = max(self._last + 1, candidate)
        return self._last


class SchemaGuard:
    """写入与集合结构变更之间的读写守卫"""

    def __init__(self):
        self._condition = asyncio.Condition()
        self._schema_changing = False
        self._active_inserts = 0

    @asynccontextmanager
    async def insert(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._schema_changing)
            self._active_inserts += 1
        try:
            yield
        finally:
            async with self._condition:
                self._active_inserts -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def schema_change(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._schema_changing and self._active_inserts == 0
            )
            self._schema_changing = True
        try:
            yield
        finally:
            async with self._condition:
                self._schema_changing = False
                self._condition.notify_all()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class VectorIndexClient:
    """
    Milvus集合客户端

    MilvusClient为进程级共享连接，阻塞调用放到线程池执行。
    """

    def __init__(
        self,
        client: Optional[MilvusClient] = None,
        collection_name: Optional[str] = None,
        dimension: Optional[int] = None,
        connector: Optional[Callable[[], Awaitable[MilvusClient]]] = None
    ):
        self.client = client
        self._connector = connector
        self._connect_lock = asyncio.Lock()
        self.collection_name = collection_name or app_config.MILVUS_COLLECTION
        self.dimension = dimension or rag_config.EMBEDDING_DIMENSION
        self.id_generator = RecordIdGenerator()
        self._guard = SchemaGuard()
        self._loaded = False

    async def _get_client(self) -> MilvusClient:
        """返回已有连接；启动时未连上的情况下按需重连"""
        if self.client is not None:
            return self.client
        if self._connector is None:
            raise DependencyUnavailableException("milvus", "未建立连接")

        async with self._connect_lock:
            if self.client is None:
                try:
                    self.client = await self._connector()
                except Exception as e:
                    raise DependencyUnavailableException("milvus", type(e).__name__) from e
        return self.client

    async def _call(self, method: str, *args, **kwargs) -> Any:
        client = await self._get_client()
        try:
            return await asyncio.to_thread(getattr(client, method), *args, **kwargs)
        except MilvusException as e:
            logger.error(f"Milvus调用失败: {method}, 错误: {e}")
            raise DependencyUnavailableException("milvus", type(e).__name__) from e

    async def ping(self) -> bool:
        """连通性探测"""
        try:
            await self._call("get_server_version")
            return True
        except Exception as e:
            logger.warning(f"Milvus连通性探测失败: {e}")
            return False

    # ==================== 集合生命周期 ====================

    async def state(self) -> CollectionState:
        """查询集合当前状态"""
        if not await self._call("has_collection", self.collection_name):
            return CollectionState.ABSENT

        load_state = await self._call("get_load_state", collection_name=self.collection_name)
        state = load_state.get("state") if isinstance(load_state, dict) else load_state
        if getattr(state, "name", str(state)) == "Loaded":
            return CollectionState.LOADED
        return CollectionState.CREATED

    async def ensure_collection(self) -> dict:
        """
        确保集合已创建、已建索引并已加载

        已加载时为空操作，仍返回当前统计。

        返回:
            dict: 集合统计信息
        """
        async with self._guard.schema_change():
            state = await self.state()

            if state is CollectionState.ABSENT:
                await self._create_collection()
                state = CollectionState.CREATED

            if state is CollectionState.CREATED:
                await self._ensure_indexes()
                await self._call("load_collection", self.collection_name)
                logger.info(f"向量集合已加载: {self.collection_name}")

            self._loaded = True

        return await self.stats()

    async def _create_collection(self):
        client = await self._get_client()
        schema = client.create_schema(
            auto_id=False,
            enable_dynamic_field=False,
            description="multimodal product embeddings"
        )
        schema.add_field(field_name="id", datatype=DataType.INT64, is_primary=True)
        schema.add_field(field_name=VectorField.TEXT.value, datatype=DataType.FLOAT_VECTOR, dim=self.dimension)
        schema.add_field(field_name=VectorField.IMAGE.value, datatype=DataType.FLOAT_VECTOR, dim=self.dimension)
        schema.add_field(field_name="metadata", datatype=DataType.JSON)

        await self._call(
            "create_collection",
            collection_name=self.collection_name,
            schema=schema
        )
        logger.info(f"向量集合创建成功: {self.collection_name}, 维度: {self.dimension}")

    async def _ensure_indexes(self):
        existing = set(await self._call("list_indexes", self.collection_name) or [])
        missing = [field for field in VectorField if f"{field.value}_idx" not in existing]
        if not missing:
            return

        client = await self._get_client()
        index_params = client.prepare_index_params()
        for field in missing:
            index_params.add_index(
                field_name=field.value,
                index_name=f"{field.value}_idx",
                index_type=app_config.MILVUS_INDEX_TYPE,
                metric_type=app_config.MILVUS_METRIC_TYPE,
                params={"nlist": app_config.MILVUS_NLIST}
            )
        await self._call("create_index", self.collection_name, index_params)
        logger.info(f"向量索引创建完成: {[field.value for field in missing]}")

    async def drop(self) -> bool:
        """
        删除整个集合，仅用于重置/维护

        返回:
            bool: 集合存在并被删除时为True
        """
        async with self._guard.schema_change():
            self._loaded = False
            if not await self._call("has_collection", self.collection_name):
                logger.warning(f"向量集合不存在: {self.collection_name}")
                return False

            await self._call("drop_collection", self.collection_name)
            logger.info(f"向量集合已删除: {self.collection_name}")
            return True

    async def stats(self) -> dict:
        """集合统计（行数）"""
        state = await self.state()
        row_count = 0
        if state is not CollectionState.ABSENT:
            stats = await self._call("get_collection_stats", self.collection_name)
            row_count = int(stats.get("row_count", 0))

        return {
            "collection_name": self.collection_name,
            "state": state.value,
            "row_count": row_count
        }

    # ==================== 读写 ====================

    async def _require_loaded(self):
        if self._loaded:
            return
        state = await self.state()
        if state is not CollectionState.LOADED:
            raise VectorIndexNotReadyException(self.collection_name, state.value)
        self._loaded = True

    def _check_dimension(self, vector: list[float], field: VectorField):
        if len(vector) != self.dimension:
            raise InvalidInputException(
                f"{field.value} 维度为 {len(vector)}，集合维度为 {self.dimension}"
            )

    async def insert(self, record: EmbeddingRecord) -> int:
        """
        写入一条向量记录

        写入后需调用 flush()，否则紧随其后的检索可能看不到这条记录。

        返回:
            int: 记录主键
        """
        await self._require_loaded()
        self._check_dimension(record.text_vector, VectorField.TEXT)
        self._check_dimension(record.image_vector, VectorField.IMAGE)

        async with self._guard.insert():
            await self._call(
                "insert",
                collection_name=self.collection_name,
                data=[{
                    "id": record.id,
                    VectorField.TEXT.value: record.text_vector,
                    VectorField.IMAGE.value: record.image_vector,
                    "metadata": record.metadata.model_dump(mode="json"),
                }]
            )

        logger.debug(f"向量记录写入: id={record.id}, product_id={record.metadata.product_id}")
        return record.id

    async def flush(self):
        """刷新集合，使已写入的记录对检索可见"""
        async with self._guard.insert():
            await self._call("flush", self.collection_name)

    async def search(
        self,
        vector: list[float],
        field: VectorField,
        limit: int,
        probe_width: Optional[int] = None
    ) -> list[SearchHit]:
        """
        向量检索

        参数:
            vector: 查询向量
            field: 检索的向量字段
            limit: 最大返回数量
            probe_width: 扫描的聚类数，越大召回越高、延迟越高

        返回:
            list[SearchHit]: 按相似度降序排列的命中
        """
        if limit <= 0:
            return []
        self._check_dimension(vector, field)
        await self._require_loaded()

        results = await self._call(
            "search",
            collection_name=self.collection_name,
            data=[vector],
            anns_field=field.value,
            limit=limit,
            search_params={
                "metric_type": app_config.MILVUS_METRIC_TYPE,
                "params": {"nprobe": probe_width or rag_config.SEARCH_NPROBE}
            },
            output_fields=["metadata"]
        )

        hits: list[SearchHit] = []
        for hit in (results[0] if results else []):
            score = float(hit["distance"])
            # 全零图片向量代表没有图片，不能作为视觉命中
            if field is VectorField.IMAGE and not (math.isfinite(score) and score > 0):
                continue

            try:
                metadata = VectorMetadata.model_validate((hit.get("entity") or {}).get("metadata"))
            except ValidationError as e:
                logger.warning(f"跳过元数据不合法的向量记录 id={hit.get('id')}: {e}")
                continue

            hits.append(SearchHit(
                product_id=metadata.product_id,
                score=score,
                search_type=field.search_type,
                created_at=metadata.created_at
            ))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits

    async def query_by_metadata(self, product_id: str, limit: int = 1) -> list[dict]:
        """
        按元数据中的 product_id 查询记录，用于导入前的存在性检查

        返回:
            list[dict]: 包含 id 与 metadata 的记录
        """
        return await self._call(
            "query",
            collection_name=self.collection_name,
            filter=f'metadata["product_id"] == "{_escape(product_id)}"',
            output_fields=["id", "metadata"],
            limit=limit
        )

    async def exists(self, product_id: str) -> bool:
        return bool(await self.query_by_metadata(product_id, limit=1))

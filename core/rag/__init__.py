"""
检索核心模块

- embedding_service: 文本/图片向量生成
- caption_service: 图片描述生成
- query_expander: 查询扩展
- vector_index: Milvus向量集合客户端
- keyword_store: 商品目录关键词检索
- ranking: 结果合并与去重
- retrieval_service: 检索编排
- indexer: 商品向量导入
"""

"""
检索结果合并

候选结果先按命中层级排序（视觉 > 语义 > 关键词），
同一层级内按分数降序，分数相同时保持到达顺序。
不同层级之间的分数不做比较。
"""

from typing import Iterable, Mapping, Sequence

from libs.types import MatchType
from models import Product, RankedResult, SearchHit


def hits_to_candidates(
    hits: Sequence[SearchHit],
    match_type: MatchType,
    products: Mapping[str, Product],
    weight: float = 1.0
) -> list[RankedResult]:
    """
    为向量命中关联商品记录

    参数:
        hits: 向量命中
        match_type: 命中类型
        products: 按 source_id 索引的商品记录
        weight: 分数权重系数

    返回:
        list[RankedResult]: 候选结果，目录中不存在的商品被丢弃
    """
    candidates = []
    for hit in hits:
        product = products.get(hit.product_id)
        if product is None:
            continue
        candidates.append(RankedResult(
            product_id=hit.product_id,
            match_type=match_type,
            score=hit.score * weight,
            position=0,
            product=product
        ))
    return candidates


def exact_candidates(products: Sequence[Product]) -> list[RankedResult]:
    """关键词命中保持目录顺序，不带分数"""
    return [
        RankedResult(
            product_id=product.source_id,
            match_type=MatchType.EXACT,
            score=None,
            position=0,
            product=product
        )
        for product in products
    ]


def merge_results(candidates: Iterable[RankedResult], limit: int) -> list[RankedResult]:
    """按商品标识去重并保留排序最靠前的一条，截断到 limit"""
    if limit <= 0:
        return []

    indexed = list(enumerate(candidates))
    indexed.sort(key=lambda item: (
        item[1].match_type.tier,
        -item[1].score if item[1].score is not None else 0.0,
        item[0]
    ))

    merged: list[RankedResult] = []
    seen: set[str] = set()
    for _, candidate in indexed:
        if candidate.product_id in seen:
            continue
        seen.add(candidate.product_id)
        merged.append(candidate.model_copy(update={"position": len(merged)}))
        if len(merged) >= limit:
            break

    return merged

from enum import StrEnum


class SearchType(StrEnum):
    """单次检索调用的来源类型"""
    TEXT = "text"
    IMAGE = "image"
    EXACT = "exact"


class MatchType(StrEnum):
    """合并结果的来源标记，按优先级从高到低: visual > semantic > exact"""
    VISUAL = "visual"
    SEMANTIC = "semantic"
    EXACT = "exact"

    @property
    def tier(self) -> int:
        """合并排序层级，数值越小优先级越高"""
        return _MATCH_TIERS[self]


_MATCH_TIERS = {
    MatchType.VISUAL: 0,
    MatchType.SEMANTIC: 1,
    MatchType.EXACT: 2,
}


class VectorField(StrEnum):
    """向量集合中的向量字段"""
    TEXT = "text_vector"
    IMAGE = "image_vector"

    @property
    def search_type(self) -> SearchType:
        return SearchType.IMAGE if self is VectorField.IMAGE else SearchType.TEXT


class CollectionState(StrEnum):
    """向量集合生命周期状态: Absent -> Created -> Loaded"""
    ABSENT = "absent"
    CREATED = "created"
    LOADED = "loaded"

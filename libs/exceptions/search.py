"""
检索相关异常

包含输入校验、模型加载、图片描述、向量索引和依赖服务的异常定义。
"""

from .base import BaseHTTPException


class SearchException(BaseHTTPException):
    """检索异常基类"""
    code = 3000000
    message = "SEARCH_ERROR"
    http_status_code = 500


class InvalidInputException(SearchException):
    """输入不合法：空查询、空图片、超大图片、非法参数"""
    code = 3000001
    message = "INVALID_INPUT"
    http_status_code = 400

    def __init__(self, reason: str):
        super().__init__(detail=f"输入不合法: {reason}")


class ExpansionInputTooLongException(InvalidInputException):
    """对超过长度阈值的文本调用查询扩展"""
    code = 3000002
    message = "EXPANSION_INPUT_TOO_LONG"

    def __init__(self, length: int, threshold: int):
        super().__init__(reason=f"文本长度 {length} 超过查询扩展阈值 {threshold}")


class ModelNotReadyException(SearchException):
    """Embedding模型尚未加载"""
    code = 3000003
    message = "MODEL_NOT_READY"
    http_status_code = 503

    def __init__(self, model_name: str = ""):
        detail = "Embedding模型尚未初始化"
        if model_name:
            detail += f": {model_name}"
        super().__init__(detail=detail)


class CaptionUnavailableException(SearchException):
    """图片描述生成失败"""
    code = 3000004
    message = "CAPTION_UNAVAILABLE"
    http_status_code = 503

    def __init__(self, reason: str = ""):
        detail = "图片描述生成失败"
        if reason:
            detail += f": {reason}"
        super().__init__(detail=detail)


class DependencyUnavailableException(SearchException):
    """外部依赖（向量索引、LLM端点、数据库）不可用"""
    code = 3000005
    message = "DEPENDENCY_UNAVAILABLE"
    http_status_code = 503

    def __init__(self, dependency: str, reason: str = ""):
        self.dependency = dependency
        detail = f"依赖服务不可用: {dependency}"
        if reason:
            detail += f" ({reason})"
        super().__init__(detail=detail)


class VectorIndexNotReadyException(SearchException):
    """向量集合未处于已加载状态"""
    code = 3000006
    message = "VECTOR_INDEX_NOT_READY"
    http_status_code = 503

    def __init__(self, collection_name: str, state: str):
        super().__init__(detail=f"向量集合 {collection_name} 未加载，当前状态: {state}")


class SearchUnavailableException(SearchException):
    """所有检索分支均失败，无法给出任何结果"""
    code = 3000007
    message = "SEARCH_UNAVAILABLE"
    http_status_code = 503

    def __init__(self, reason: str = ""):
        detail = "检索服务暂时不可用"
        if reason:
            detail += f": {reason}"
        super().__init__(detail=detail)

"""
配置包

对外暴露全局配置实例 app_config（部署、存储和 LLM 端点配置）。
检索参数配置位于 config.rag_config。
"""

from .app import AppConfig

app_config = AppConfig()

__all__ = ["AppConfig", "app_config"]

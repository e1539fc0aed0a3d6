"""
业务库模块

库组织:
- exceptions: 异常定义库
- types: 类型定义库
- factory: 基础设施客户端工厂
"""

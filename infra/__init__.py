"""
基础设施模块: 数据库、Milvus连接与LLM运行时
"""

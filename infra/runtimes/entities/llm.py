from dataclasses import dataclass


@dataclass
class LLMRequest:
    """
    单轮LLM请求

    image_base64 为JPEG图片的base64编码（不含data URL前缀），
    由各供应商自行转换为所需格式。
    """
    prompt: str
    system_prompt: str | None = None
    image_base64: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None


@dataclass
class LLMReply:
    """归一化后的LLM回复，屏蔽各供应商的响应结构差异"""
    text: str
    provider: str

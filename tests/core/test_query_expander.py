"""
查询扩展测试
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.rag.query_expander import PRODUCT_TEMPLATE, QUERY_TEMPLATE, QueryExpander
from infra.runtimes import LLMReply
from libs.exceptions import DependencyUnavailableException, ExpansionInputTooLongException


@pytest.fixture
def llm_client():
    client = MagicMock()
    client.completions = AsyncMock(return_value=LLMReply(text='"A bright red cotton shirt."', provider="vllm"))
    return client


@pytest.fixture
def expander(llm_client):
    return QueryExpander(llm_client, max_chars=40, separator="|")


class TestQueryExpander:
    """测试查询扩展"""

    def test_prompt_template_selection(self, expander):
        """含字段分隔符的文本使用商品模板"""
        assert expander.build_prompt("red shirt") == QUERY_TEMPLATE.format(text="red shirt")
        assert expander.build_prompt("Red Shirt | clothing") == PRODUCT_TEMPLATE.format(
            text="Red Shirt | clothing", separator="|"
        )

    def test_should_expand(self, expander):
        assert expander.should_expand("red shirt") is True
        assert expander.should_expand("   ") is False
        assert expander.should_expand("x" * 41) is False

    @pytest.mark.asyncio
    async def test_expand(self, expander, llm_client):
        expanded = await expander.expand("red shirt")

        assert expanded == "A bright red cotton shirt."
        request = llm_client.completions.call_args.args[0]
        assert "red shirt" in request.prompt
        assert request.system_prompt

    @pytest.mark.asyncio
    async def test_input_too_long(self, expander, llm_client):
        """超过阈值的输入属于调用错误"""
        with pytest.raises(ExpansionInputTooLongException) as exc_info:
            await expander.expand("x" * 41)

        assert exc_info.value.http_status_code == 400
        llm_client.completions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_failure_returns_input(self, expander, llm_client):
        """LLM不可用时原样返回输入"""
        llm_client.completions.side_effect = DependencyUnavailableException("llm", "all down")

        assert await expander.expand("red shirt") == "red shirt"

    @pytest.mark.asyncio
    async def test_blank_reply_returns_input(self, expander, llm_client):
        llm_client.completions.return_value = LLMReply(text='""', provider="ollama")

        assert await expander.expand("red shirt") == "red shirt"

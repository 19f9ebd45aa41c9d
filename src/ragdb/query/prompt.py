"""Prompt composition for the completion endpoint."""
from langchain_core.prompts import PromptTemplate

FALLBACK_CONTEXT = "无相关本地背景知识。"

RAG_PROMPT = '''你是我的私人助理。
背景资料：
"""
{context}
"""
用户问题：{query}
请结合背景资料，用亲切的语气回答用户。'''

_TEMPLATE = PromptTemplate.from_template(RAG_PROMPT)


def build_prompt(context: str | None, query: str) -> str:
    """Embed *context* (or the fallback sentence) and *query* into the RAG prompt.

    Values are inserted verbatim; escaping for the wire format is the
    completion client's job.
    """
    if not context:
        context = FALLBACK_CONTEXT
    return _TEMPLATE.format(context=context, query=query)

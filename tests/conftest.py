"""Pytest fixtures shared across tests."""

import pytest
from langchain_core.documents import Document

from ragdb.query.synonyms import SynonymTable


def make_corpus(*texts: str) -> list[Document]:
    return [
        Document(page_content=t, metadata={"source": "test.txt", "line": i + 1, "index": i})
        for i, t in enumerate(texts)
    ]


@pytest.fixture
def weather_corpus() -> list[Document]:
    return make_corpus("今天天气很冷，建议穿外套", "Go是一种编程语言")


@pytest.fixture
def cold_table() -> SynonymTable:
    return SynonymTable.from_mapping({"冷": ["气温", "寒冷"]})


@pytest.fixture(name="make_corpus")
def make_corpus_fixture():
    return make_corpus

"""
Query refiner tests - bounded wait with fallback to the original text.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from conftest import run
from icp_platform.core.refinement import OllamaQueryRefiner, QueryRefiner


class ScriptedRefiner(QueryRefiner):

    def __init__(self, answer=None, delay=0.0, error=None, timeout_sec=0.05):
        super().__init__(timeout_sec)
        self.answer = answer
        self.delay = delay
        self.error = error

    async def _rewrite(self, query):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.answer


def test_returns_rewritten_query():
    assert run(ScriptedRefiner(answer="  solar lamp  ").refine("light for kids at night")) == "solar lamp"


def test_timeout_falls_back_to_original():
    refiner = ScriptedRefiner(answer="never", delay=1.0, timeout_sec=0.01)
    assert run(refiner.refine("clean water")) == "clean water"


def test_error_falls_back_to_original():
    refiner = ScriptedRefiner(error=ConnectionError("refused"))
    assert run(refiner.refine("clean water")) == "clean water"


def test_empty_answer_falls_back_to_original():
    assert run(ScriptedRefiner(answer="   ").refine("clean water")) == "clean water"


def test_ollama_refiner_reads_generate_response():
    refiner = OllamaQueryRefiner(model_name="test-model", host="http://localhost:1", timeout_sec=1.0)
    with patch.object(refiner.client, "generate", AsyncMock(return_value={"response": "water filter"})) as generate:
        assert run(refiner.refine("how do I get clean water")) == "water filter"

    assert generate.await_args.kwargs["model"] == "test-model"
    assert "how do I get clean water" in generate.await_args.kwargs["prompt"]

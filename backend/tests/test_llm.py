import pytest


@pytest.mark.asyncio
async def test_call_llm_blank_prompt_short_circuit():
    from interview_runtime.ai_reasoning.llm import call_llm

    result = await call_llm("")
    assert result == "{}"


@pytest.mark.asyncio
async def test_call_llm_success_with_mock(fake_llm):
    from interview_runtime.ai_reasoning import llm

    completions = fake_llm('{"ok": true}')

    result = await llm.call_llm("return json")
    assert result == '{"ok": true}'
    assert completions.calls[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_call_llm_fallback_after_failures(fake_llm):
    from interview_runtime.ai_reasoning import llm

    completions = fake_llm(RuntimeError("forced"), RuntimeError("forced"))

    result = await llm.call_llm("will fail", retries=1, timeout_sec=0.1)
    assert result == "{}"
    assert len(completions.calls) == 2


@pytest.mark.asyncio
async def test_call_chat_raises_after_retries(fake_llm):
    from interview_runtime.ai_reasoning import llm

    fake_llm(RuntimeError("down"), RuntimeError("down"))

    with pytest.raises(RuntimeError):
        await llm.call_chat([{"role": "user", "content": "hi"}], retries=1, timeout_sec=0.1)


def test_llm_available_follows_client(fake_llm):
    from interview_runtime.ai_reasoning import llm

    assert llm.llm_available() is False
    fake_llm()
    assert llm.llm_available() is True

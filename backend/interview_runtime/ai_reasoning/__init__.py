from interview_runtime.ai_reasoning.llm import call_chat, call_llm, get_client, llm_available, transcribe_audio

__all__ = ["call_chat", "call_llm", "get_client", "llm_available", "transcribe_audio"]

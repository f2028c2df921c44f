from interview_runtime.turn_taking.coordinator import SpeechSynthesizer, TurnTakingCoordinator

__all__ = ["SpeechSynthesizer", "TurnTakingCoordinator"]

from pydantic import BaseModel, Field


class ChatTiming(BaseModel):
    remainingSeconds: int | None = None
    totalMinutes: int | None = None


class ChatTurnRequest(BaseModel):
    token: str | None = None
    interviewId: str | None = None
    userText: str = ""
    history: list[dict] = Field(default_factory=list)
    timing: ChatTiming = Field(default_factory=ChatTiming)


class ChatTurnResponse(BaseModel):
    reply: str


class TranscriptRequest(BaseModel):
    token: str = ""
    history: list[dict] = Field(default_factory=list)
    forceNewAttempt: bool = False


class StatusRequest(BaseModel):
    token: str = ""
    status: str = ""


class RubricRequest(BaseModel):
    parameters: list[dict] = Field(default_factory=list)
    includeOverall: bool | None = None
    includeSkillLevels: bool | None = None
    cefrEnabled: bool | None = None


class ScoreRequest(BaseModel):
    transcript: list[dict] = Field(default_factory=list)
    rubric: RubricRequest | None = None
    interviewerRole: str | None = None
    mode: str = "auto"

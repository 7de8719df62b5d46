"""
API request and response schemas.
What it defines:
- Task payloads (instruction, input text, optional audio)
- Confirmation payloads
- Response formats

And, the main purpose:
Ensure structured communication between a host UI and the plan loop.
"""


from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

class RunTaskRequest(BaseModel):
    instruction: str = Field(..., min_length=1)
    input_text: str = ""
    audio_base64: Optional[str] = Field(None, description="Optional audio clip for the prompt capability")
    audio_mime: str = "audio/mpeg"

class RunTaskResponse(BaseModel):
    run_id: str
    result: str
    events: List[Dict[str, Any]] = []

class StartTaskResponse(BaseModel):
    run_id: str

class TaskStatus(BaseModel):
    run_id: str
    status: str  # running|done
    result: Optional[str] = None
    pending_confirmations: List[str] = []
    events: List[Dict[str, Any]] = []

class ConfirmationRequest(BaseModel):
    resource: str
    accept: bool = True

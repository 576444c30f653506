from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

class StartFormRequest(BaseModel):
    flowId: str = "support"

class AnswerRequest(BaseModel):
    name: str
    value: Optional[str] = None

class AnswersRequest(BaseModel):
    # Applied in order, so a controlling answer can reveal the next fields
    answers: List[AnswerRequest] = Field(default_factory=list)

class FieldOption(BaseModel):
    value: str
    label: str

class AttachedFile(BaseModel):
    filename: Optional[str] = None
    contentType: Optional[str] = None
    size: Optional[int] = None

class FieldView(BaseModel):
    name: str
    label: str
    kind: str
    required: bool
    options: List[FieldOption] = Field(default_factory=list)
    maxLength: Optional[int] = None
    placeholder: str = ""
    accept: List[str] = Field(default_factory=list)
    maxBytes: Optional[int] = None
    multiple: bool = False
    value: Optional[str] = None
    files: List[AttachedFile] = Field(default_factory=list)
    error: Optional[str] = None

class FormView(BaseModel):
    sessionId: str
    flowId: str
    title: str
    status: Literal["DRAFT", "SUBMITTED", "FAILED"]
    fields: List[FieldView]
    canSubmit: bool
    formError: Optional[str] = None
    successMessage: Optional[str] = None
    submissionId: Optional[str] = None

class PayloadPreview(BaseModel):
    mutation: str
    variables: Dict[str, Any]
    fileEncoding: str
    filePaths: List[str] = Field(default_factory=list)

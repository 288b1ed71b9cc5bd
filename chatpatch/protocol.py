"""
Boundary schemas — every request crossing from the UI into the engine
and every response going back, as tagged pydantic models.
"""

from __future__ import annotations

import typing
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, Field, TypeAdapter


class PacketKind(str, Enum):
    ASK = "ask"
    ASSISTANT_MESSAGE = "assistant_message"
    ACCEPT_EDIT = "accept_edit"
    REJECT_EDIT = "reject_edit"
    ACCEPT_ALL = "accept_all"
    REJECT_ALL = "reject_all"
    SELECT_EDIT = "select_edit"
    DIFF_REQ = "diff_req"
    LIST_EDITS = "list_edits"

    ACK = "ack"
    ERROR = "error"
    EDIT_LIST = "edit_list"
    DIFF_RESP = "diff_resp"
    ASK_RESP = "ask_resp"


# ── Requests ──

class AskRequest(BaseModel):
    kind: typing.Literal[PacketKind.ASK] = Field(default=PacketKind.ASK)
    question: str
    active_file: Optional[str] = Field(default=None)
    open_files: list[str] = Field(default_factory=list)


class AssistantMessagePacket(BaseModel):
    kind: typing.Literal[PacketKind.ASSISTANT_MESSAGE] = Field(
        default=PacketKind.ASSISTANT_MESSAGE
    )
    content: str
    message_id: Optional[str] = Field(default=None)


class AcceptEditRequest(BaseModel):
    kind: typing.Literal[PacketKind.ACCEPT_EDIT] = Field(default=PacketKind.ACCEPT_EDIT)
    edit_id: str


class RejectEditRequest(BaseModel):
    kind: typing.Literal[PacketKind.REJECT_EDIT] = Field(default=PacketKind.REJECT_EDIT)
    edit_id: str


class AcceptAllRequest(BaseModel):
    kind: typing.Literal[PacketKind.ACCEPT_ALL] = Field(default=PacketKind.ACCEPT_ALL)


class RejectAllRequest(BaseModel):
    kind: typing.Literal[PacketKind.REJECT_ALL] = Field(default=PacketKind.REJECT_ALL)


class SelectEditRequest(BaseModel):
    kind: typing.Literal[PacketKind.SELECT_EDIT] = Field(default=PacketKind.SELECT_EDIT)
    edit_id: Optional[str] = Field(default=None)


class DiffRequest(BaseModel):
    kind: typing.Literal[PacketKind.DIFF_REQ] = Field(default=PacketKind.DIFF_REQ)
    edit_id: str


class ListEditsRequest(BaseModel):
    kind: typing.Literal[PacketKind.LIST_EDITS] = Field(default=PacketKind.LIST_EDITS)


RequestPacket = Annotated[
    typing.Union[
        AskRequest,
        AssistantMessagePacket,
        AcceptEditRequest,
        RejectEditRequest,
        AcceptAllRequest,
        RejectAllRequest,
        SelectEditRequest,
        DiffRequest,
        ListEditsRequest,
    ],
    Field(discriminator="kind"),
]

request_adapter: TypeAdapter[RequestPacket] = TypeAdapter(RequestPacket)


# ── Responses ──

class EditSummary(BaseModel):
    id: str
    path: str
    display_path: str
    absolute_path: str
    action: str
    reason: Optional[str] = Field(default=None)


class DiffRowModel(BaseModel):
    text: str
    kind: str


class AckResponse(BaseModel):
    kind: typing.Literal[PacketKind.ACK] = Field(default=PacketKind.ACK)


class ErrorResponse(BaseModel):
    kind: typing.Literal[PacketKind.ERROR] = Field(default=PacketKind.ERROR)
    message: str


class EditListResponse(BaseModel):
    kind: typing.Literal[PacketKind.EDIT_LIST] = Field(default=PacketKind.EDIT_LIST)
    edits: list[EditSummary] = Field(default_factory=list)
    selected_id: Optional[str] = Field(default=None)


class DiffResponse(BaseModel):
    kind: typing.Literal[PacketKind.DIFF_RESP] = Field(default=PacketKind.DIFF_RESP)
    edit_id: str
    rows: list[DiffRowModel] = Field(default_factory=list)


class AskResponse(BaseModel):
    kind: typing.Literal[PacketKind.ASK_RESP] = Field(default=PacketKind.ASK_RESP)
    reply: str = ""
    edit_ids: list[str] = Field(default_factory=list)
    context_paths: list[str] = Field(default_factory=list)
    banner: Optional[str] = Field(default=None)
    cancelled: bool = Field(default=False)


ResponsePacket = Annotated[
    typing.Union[
        AckResponse,
        ErrorResponse,
        EditListResponse,
        DiffResponse,
        AskResponse,
    ],
    Field(discriminator="kind"),
]

response_adapter: TypeAdapter[ResponsePacket] = TypeAdapter(ResponsePacket)

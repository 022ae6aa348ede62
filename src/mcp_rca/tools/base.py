"""Tool — the common capability every registered tool implements.

Tools take differently shaped inputs and outputs but share one registry, so
each one is described by a pair of pydantic models and exposes the same
three operations: validate its input, execute, and describe its schemas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, StringConstraints

from mcp_rca.protocol.models import ToolDescriptor

if TYPE_CHECKING:
    from mcp_rca.protocol.context import ToolContext
    from mcp_rca.store.case_store import CaseStore


InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

Identifier = Annotated[str, StringConstraints(min_length=1)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedText = Annotated[str, StringConstraints(strip_whitespace=True)]


class Tool(ABC, Generic[InputT, OutputT]):
    """A named, schema-described unit of server functionality.

    Subclasses set :attr:`name`, :attr:`description`, :attr:`input_model`
    and :attr:`output_model` and implement :meth:`execute`.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    input_model: ClassVar[type[BaseModel]]
    output_model: ClassVar[type[BaseModel]]

    def validate_input(self, arguments: dict[str, Any]) -> InputT:
        """Validate raw ``tools/call`` arguments (raises ``pydantic.ValidationError``)."""
        return self.input_model.model_validate(arguments)  # type: ignore[return-value]

    @abstractmethod
    async def execute(self, params: InputT, context: ToolContext) -> OutputT: ...

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.input_model.model_json_schema(by_alias=True),
            output_schema=self.output_model.model_json_schema(by_alias=True, mode="serialization"),
        )

    def dump_output(self, output: OutputT) -> dict[str, Any]:
        """Serialise *output* to a JSON-ready dict using wire aliases."""
        return output.model_dump(by_alias=True, exclude_none=True, mode="json")


class StoreTool(Tool[InputT, OutputT]):
    """A tool that reads or writes cases through a :class:`CaseStore`."""

    def __init__(self, store: CaseStore) -> None:
        self.store = store

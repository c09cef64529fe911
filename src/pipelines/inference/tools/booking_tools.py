"""Booking tools exposed to the chat model.

Declares the three booking operations as LangChain tools and dispatches
model-issued tool calls to the booking service. Domain and validation
failures never escape this module: they are logged and reported back to the
model as a degraded ``ToolResult`` so the conversation can continue.
"""

import json
from typing import Any, Callable, Dict, List, Literal, Optional, Type

from langchain_core.messages import ToolCall, ToolMessage
from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.core.booking import BookingDetails, BookingError, FlightBookingService
from src.utils.logging import log_context

from ..logging import InferenceLoggerMixin


class BookingDetailsRequest(BaseModel):
    """Arguments for a booking lookup."""

    model_config = ConfigDict(populate_by_name=True)

    booking_number: str = Field(..., alias="bookingNumber", description="Booking number")
    name: str = Field(..., description="Customer name")


class ChangeBookingRequest(BookingDetailsRequest):
    """Arguments for changing a booking's date and route."""

    date: str = Field(..., description="New flight date in YYYY-MM-DD format")
    origin: str = Field(..., alias="from", description="New departure city")
    destination: str = Field(..., alias="to", description="New arrival city")


class CancelBookingRequest(BookingDetailsRequest):
    """Arguments for cancelling a booking."""


class ToolResult(BaseModel):
    """Outcome of one tool invocation, returned to the model."""

    status: Literal["success", "degraded"]
    data: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_content(self) -> str:
        return json.dumps(self.model_dump(exclude_none=True), ensure_ascii=False, default=str)


class BookingTools(InferenceLoggerMixin):
    """Bridge between model tool calls and the booking service."""

    GET_BOOKING_DETAILS = "getBookingDetails"
    CHANGE_BOOKING = "changeBooking"
    CANCEL_BOOKING = "cancelBooking"

    def __init__(self, booking_service: FlightBookingService):
        self.booking_service = booking_service
        self._operations: Dict[str, tuple] = {
            self.GET_BOOKING_DETAILS: (
                "Get booking details",
                BookingDetailsRequest,
                self._get_booking_details,
            ),
            self.CHANGE_BOOKING: (
                "Change the flight date and route of a booking",
                ChangeBookingRequest,
                self._change_booking,
            ),
            self.CANCEL_BOOKING: (
                "Cancel a booking",
                CancelBookingRequest,
                self._cancel_booking,
            ),
        }
        self._tools = [
            self._make_tool(name, description, schema)
            for name, (description, schema, _) in self._operations.items()
        ]

    @property
    def tools(self) -> List[StructuredTool]:
        """Tool declarations to bind to the chat model."""
        return list(self._tools)

    @property
    def tool_names(self) -> List[str]:
        return list(self._operations)

    def _make_tool(self, name: str, description: str, schema: Type[BaseModel]) -> StructuredTool:
        def run(**kwargs: Any) -> str:
            return self.invoke(name, kwargs).to_content()

        return StructuredTool.from_function(
            func=run,
            name=name,
            description=description,
            args_schema=schema,
        )

    # Public operations

    def get_booking_details(self, booking_number: str, name: str) -> ToolResult:
        return self.invoke(
            self.GET_BOOKING_DETAILS, {"bookingNumber": booking_number, "name": name}
        )

    def change_booking(
        self, booking_number: str, name: str, date: str, origin: str, destination: str
    ) -> ToolResult:
        return self.invoke(self.CHANGE_BOOKING, {
            "bookingNumber": booking_number,
            "name": name,
            "date": date,
            "from": origin,
            "to": destination,
        })

    def cancel_booking(self, booking_number: str, name: str) -> ToolResult:
        return self.invoke(
            self.CANCEL_BOOKING, {"bookingNumber": booking_number, "name": name}
        )

    def invoke(self, tool_name: str, args: Dict[str, Any]) -> ToolResult:
        """Validate ``args`` and run the named operation.

        Never raises for unknown tools, malformed arguments or booking errors.
        """
        operation = self._operations.get(tool_name)
        if operation is None:
            self.logger.warning(f"Model requested unknown tool: {tool_name}")
            return ToolResult(status="degraded", reason=f"Unknown tool: {tool_name}")

        _, schema, handler = operation
        try:
            request = schema.model_validate(args or {})
        except ValidationError as e:
            self.logger.warning(
                f"Invalid arguments for {tool_name}: {e.error_count()} error(s)",
                extra={"extra_fields": {"tool": tool_name, "errors": e.errors(include_url=False)}}
            )
            return ToolResult(
                status="degraded",
                data=self._echo(args),
                reason=f"Invalid arguments for {tool_name}"
            )

        return handler(request)

    def dispatch(self, tool_call: ToolCall) -> ToolMessage:
        """Run a model-issued tool call and wrap the result for the model."""
        with log_context(tool=tool_call["name"], tool_call_id=tool_call.get("id")):
            result = self.invoke(tool_call["name"], tool_call.get("args") or {})
        return ToolMessage(
            content=result.to_content(),
            tool_call_id=tool_call.get("id") or "",
            name=tool_call["name"],
            status="success" if result.ok else "error",
        )

    # Handlers

    def _get_booking_details(self, request: BookingDetailsRequest) -> ToolResult:
        try:
            details = self.booking_service.get_booking_details(request.booking_number, request.name)
        except BookingError as e:
            return self._degraded("get booking details", e, BookingDetails(
                booking_number=request.booking_number, name=request.name
            ))
        return ToolResult(status="success", data=details.to_payload())

    def _change_booking(self, request: ChangeBookingRequest) -> ToolResult:
        return self._run_mutation(
            "change booking",
            request,
            lambda: self.booking_service.change_booking(
                request.booking_number,
                request.name,
                request.date,
                request.origin,
                request.destination,
            ),
        )

    def _cancel_booking(self, request: CancelBookingRequest) -> ToolResult:
        return self._run_mutation(
            "cancel booking",
            request,
            lambda: self.booking_service.cancel_booking(request.booking_number, request.name),
        )

    def _run_mutation(
        self,
        action: str,
        request: BookingDetailsRequest,
        operation: Callable[[], BookingDetails]
    ) -> ToolResult:
        try:
            details = operation()
        except BookingError as e:
            return self._degraded(action, e, BookingDetails(
                booking_number=request.booking_number, name=request.name
            ))
        return ToolResult(status="success", data=details.to_payload())

    def _degraded(self, action: str, error: BookingError, echo: BookingDetails) -> ToolResult:
        self.logger.warning(
            f"Failed to {action}: {error.message}",
            extra={"extra_fields": {
                "booking_number": echo.booking_number,
                "error_code": error.error_code,
            }}
        )
        return ToolResult(status="degraded", data=echo.to_payload(), reason=error.message)

    @staticmethod
    def _echo(args: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not args:
            return None
        echoed = {k: args[k] for k in ("bookingNumber", "name") if isinstance(args.get(k), str)}
        return echoed or None

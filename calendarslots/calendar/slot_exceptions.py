"""Custom exception hierarchy for slot expansion errors.

Expansion is deterministic, so none of these errors are transient: the same
event and rule will fail the same way every time. Callers should surface them
instead of retrying.
"""


class SlotExpansionError(Exception):
    """Base exception for all slot expansion errors.

    All custom exceptions raised by calendarslots inherit from this base class
    so callers can handle expansion failures in one place.
    """


class InvalidTimezoneError(SlotExpansionError, ValueError):
    """A zone identifier could not be resolved.

    Raised when:
    - The identifier is not a known IANA zone or mapped Windows zone name
    - The identifier is empty or malformed (e.g. contains path separators)

    This is a configuration error on the event, not a bug in the engine.
    """

    def __init__(self, zone_id: object, message: str | None = None) -> None:
        self.zone_id = zone_id
        super().__init__(message or f"Unknown or invalid timezone: {zone_id!r}")


class RecurrenceContractError(SlotExpansionError):
    """A precondition that upstream validation guarantees was broken.

    Raised when:
    - A rule variant reaches the generator without a matching branch
    - A duration unit outside the supported set is requested
    - An event and rule disagree in a way validation should have rejected

    Indicates a programming error in the caller, not bad user input.
    """


class SlotStoreError(SlotExpansionError):
    """The storage collaborator failed to persist, read or delete slots."""

"""Enumeration types for vtsim"""

from enum import Enum


class EventState(str, Enum):
    """Lifecycle state of an event.

    Transitions are monotonic: IDLE -> TRIGGERED -> PROCESSED, or
    IDLE/TRIGGERED -> CANCELLED.
    """

    IDLE = "idle"
    """No outcome yet, or an outcome that is not yet due (pending timeout)"""

    TRIGGERED = "triggered"
    """Outcome fixed and due now; waiting in the queue for its callbacks"""

    PROCESSED = "processed"
    """Callbacks have run; waiting processes have been resumed"""

    CANCELLED = "cancelled"
    """Withdrawn before processing; never resumes anyone"""


class TraceEventType(str, Enum):
    """Categories of records written to an EventTrace"""

    # === Run lifecycle ===
    SIMULATION_STARTED = "simulation_started"
    SIMULATION_STOPPED = "simulation_stopped"
    SIMULATION_ENDED = "simulation_ended"

    # === Scheduler ===
    EVENT_PROCESSED = "event_processed"
    EVENT_CANCELLED = "event_cancelled"

    # === Processes ===
    PROCESS_STARTED = "process_started"
    PROCESS_FINISHED = "process_finished"
    PROCESS_FAILED = "process_failed"
    PROCESS_INTERRUPTED = "process_interrupted"

    # === Resources ===
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_GRANTED = "request_granted"
    REQUEST_CANCELLED = "request_cancelled"
    RESOURCE_RELEASED = "resource_released"

    # === Containers and stores ===
    PUT_GRANTED = "put_granted"
    GET_GRANTED = "get_granted"

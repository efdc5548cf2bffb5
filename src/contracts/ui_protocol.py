"""Web UI websocket event, command, and state constants."""

from __future__ import annotations

# Websocket event types (server -> client)
EVENT_HELLO = "hello"
EVENT_STATE_UPDATE = "state_update"
EVENT_CYCLE = "cycle"
EVENT_SETTINGS = "settings"
EVENT_ALARM = "alarm"
EVENT_WARNING = "warning"
EVENT_ERROR = "error"

# Websocket message types (client -> server)
MESSAGE_COMMAND = "command"
MESSAGE_VISIBILITY = "visibility"

# Command actions carried by `MESSAGE_COMMAND`
COMMAND_START = "start"
COMMAND_PAUSE = "pause"
COMMAND_RESET = "reset"
COMMAND_STOP_ALARM = "stop_alarm"
COMMAND_SELECT_SOUND = "select_sound"
COMMAND_PREVIEW_SOUND = "preview_sound"
COMMAND_UPDATE_TIMES = "update_times"

COMMAND_ACTIONS: frozenset[str] = frozenset(
    {
        COMMAND_START,
        COMMAND_PAUSE,
        COMMAND_RESET,
        COMMAND_STOP_ALARM,
        COMMAND_SELECT_SOUND,
        COMMAND_PREVIEW_SOUND,
        COMMAND_UPDATE_TIMES,
    }
)

# UI runtime states
STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_PAUSED = "paused"
STATE_ERROR = "error"

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_STATE_UPDATE,
        EVENT_CYCLE,
        EVENT_SETTINGS,
        EVENT_WARNING,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_SETTINGS,
    EVENT_CYCLE,
    EVENT_WARNING,
    EVENT_ERROR,
    EVENT_STATE_UPDATE,
)

import string

TEAM_A = "A"
TEAM_B = "B"
TEAMS = (TEAM_A, TEAM_B)

# Room lifecycle; only ever moves forward through this order (round_end may
# loop back to playing for the next round).
STATUS_LOBBY = "lobby"
STATUS_SUBMITTING = "submitting"
STATUS_PLAYING = "playing"
STATUS_ROUND_END = "round_end"
STATUS_GAME_OVER = "game_over"

TOTAL_ROUNDS = 3

# Fixed for every room.
TURN_DURATION_MS = 60_000

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

# Error strings surfaced in create/join replies.
ERROR_ROOM_NOT_FOUND = "RoomNotFound"
ERROR_GAME_ALREADY_STARTED = "GameAlreadyStarted"

__all__ = [
    "TEAM_A",
    "TEAM_B",
    "TEAMS",
    "STATUS_LOBBY",
    "STATUS_SUBMITTING",
    "STATUS_PLAYING",
    "STATUS_ROUND_END",
    "STATUS_GAME_OVER",
    "TOTAL_ROUNDS",
    "TURN_DURATION_MS",
    "ROOM_CODE_LENGTH",
    "ROOM_CODE_ALPHABET",
    "ERROR_ROOM_NOT_FOUND",
    "ERROR_GAME_ALREADY_STARTED",
]

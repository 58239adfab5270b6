"""User-facing session errors.

Every subclass of UserInputError is reported back to the connection
that caused it as a join-error message; none of them is fatal to the
process or to other rooms. The text sent to the client is the class
`message` attribute.
"""


class UserInputError(Exception):
    """Base for request errors caused by what the player typed or chose."""

    message = "Request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingNameError(UserInputError):
    message = "Name is required."


class RoomNotFoundError(UserInputError):
    message = "Room not found."


class GameAlreadyStartedError(UserInputError):
    message = "Game already started."


class RoomFullError(UserInputError):
    message = "Game is full."


class AlreadyInRoomError(UserInputError):
    message = "You must leave your current room first."

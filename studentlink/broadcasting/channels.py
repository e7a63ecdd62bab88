class Channel:
    """A named pub/sub topic. Public channels need no subscription auth."""

    private = False

    def __init__(self, name: str):
        self.name = name

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def __eq__(self, other) -> bool:
        return isinstance(other, Channel) and type(other) is type(self) and other.name == self.name

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name))


class PrivateChannel(Channel):
    """Subscribers must be authorized by the socket gateway before joining."""

    private = True

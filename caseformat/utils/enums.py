from enum import IntEnum


class TokenEnum(IntEnum):
    """
    Integer-coded enumeration written to tables as its member name.
    The integer codes follow the MATPOWER case format.
    """

    @property
    def token(self) -> str:
        return self.name

    @classmethod
    def from_token(cls, token: str):
        return cls[token]

    @classmethod
    def tokens(cls) -> list[str]:
        return list(cls.__members__)

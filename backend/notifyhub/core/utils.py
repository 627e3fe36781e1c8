from enum import StrEnum


class StringEnum(StrEnum):
    """
    A StrEnum subclass that behaves like a plain string in all representations.

    repr() returns the raw value ("urgent") instead of '<NotificationPriority.URGENT: 'urgent'>',
    which keeps log lines and Mongo filters readable.

    Usage:
        class MyEnum(StringEnum):
            VALUE1 = "value1"
            VALUE2 = "value2"
    """

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    def __format__(self, format_spec: str) -> str:
        return self.value.__format__(format_spec)

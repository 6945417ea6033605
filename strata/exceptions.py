"""STRATA — Application exceptions."""


class StrataError(Exception):
    """Base exception for the aggregation layer."""

    pass


class InvalidDateError(StrataError, ValueError):
    """A date argument is neither a known relative token nor YYYY-MM-DD."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid date {value!r}: expected YYYY-MM-DD, 'today', "
            f"'yesterday' or 'NdaysAgo'"
        )


class InvalidDateRangeError(StrataError, ValueError):
    """The requested window ends before it starts."""

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"End date {end_date} is before start date {start_date}")


class UnknownMetricFamilyError(StrataError, ValueError):
    """A metric family name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown metric family: {name!r}")

class AvailabilityError(Exception):
    """Base class for every failure of an availability computation."""

    pass


class NotFoundError(AvailabilityError):
    """Storefront or service is missing, inactive, or not owned by the storefront."""

    pass


class InvalidRangeError(AvailabilityError):
    """Requested dates or instants do not form an acceptable window."""

    pass


class DataSourceError(AvailabilityError):
    """A collaborator fetch failed or returned a record that cannot be read."""

    pass


class TimezoneResolutionError(AvailabilityError):
    """The storefront's timezone is not a known IANA zone."""

    pass


class ComputationCancelled(AvailabilityError):
    """The caller cancelled the computation or its deadline elapsed."""

    pass

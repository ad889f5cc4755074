# rendezvous/errors.py


class PlanningError(Exception):
    """A whole planning run cannot start; nothing was computed."""


class MissingDestinationError(PlanningError, ValueError):
    pass


class NoTravelersError(PlanningError, ValueError):
    pass

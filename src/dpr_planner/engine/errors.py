"""Error taxonomy shared by the engines and optimizers."""


class DprPlannerError(Exception):
    """Base class for planner errors."""


class CalculationFailure(DprPlannerError):
    """A DPR curve calculation raised or produced no result."""


class DataNotFound(DprPlannerError):
    """A curve did not contain the requested armor class."""


class NotReady(DprPlannerError):
    """The calculator was used before it finished starting up."""


class OptimizationError(DprPlannerError):
    """A combat or path search could not produce any result."""

class FedTrustError(Exception):
    pass


class MalformedStatement(FedTrustError):
    pass


class MalformedTrustMark(MalformedStatement):
    pass


class FetchFailure(FedTrustError):
    pass


class MissingPage(FetchFailure):
    pass


class NoPathFound(FedTrustError):
    pass


class CycleDetected(FedTrustError):
    pass


class PathTooLong(FedTrustError):
    pass


class ResolutionCancelled(FedTrustError):
    pass

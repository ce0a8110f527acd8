class ProviderError(Exception):
    """An external collaborator could not be reached or answered garbage.

    "No match" is not an error: connectors return None or an empty list for
    that. The pipeline nodes decide what a failure degrades to.
    """


class PdlError(ProviderError):
    pass


class ApolloError(ProviderError):
    pass


class ApolloRateLimited(ApolloError):
    pass


class OpenDataError(ProviderError):
    pass


class StoreError(ProviderError):
    pass

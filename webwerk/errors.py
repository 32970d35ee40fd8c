"""Exception types shared across webwerk."""


class WebwerkError(Exception):
    """Base class for webwerk errors."""


class ConfigurationError(WebwerkError):
    """A required tool, credential or setting is missing.

    Raised before any site is processed and aborts the whole batch.
    """


class SiteOperationError(WebwerkError):
    """A site cannot be processed any further.

    The batch driver records the site as failed and moves on to the next one.
    """

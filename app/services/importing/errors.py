class ImportPipelineError(RuntimeError):
    """Base for failures raised while normalizing or importing provider content."""


class ConfigurationError(ImportPipelineError):
    """Missing or inconsistent setup, e.g. an unseeded content source. Not retried."""


class UnknownProviderError(ConfigurationError, ValueError):
    def __init__(self, provider_id):
        self.provider_id = provider_id
        super().__init__(f'Unknown import provider "{provider_id}".')


class ImportValidationError(ImportPipelineError, ValueError):
    """Input failed validation (license, safety caps, payload shape)."""


class InvalidLicenseError(ImportValidationError):
    def __init__(self, raw_license, allowed, url=None):
        self.raw_license = raw_license
        self.allowed = list(allowed)
        self.url = url
        message = f'Unsupported license "{raw_license}". Allowed licenses: {", ".join(self.allowed)}.'
        super().__init__(f"{url}: {message}" if url else message)


class ResolutionError(ImportPipelineError, LookupError):
    """A module or lesson referenced by the dataset does not exist in the content store."""


class TransientError(ImportPipelineError):
    """Network failure or timeout; callers downgrade it to a warning."""


class PersistenceError(ImportPipelineError):
    """A write to the content store failed. Earlier batches stay applied."""

"""Model identifiers and the per-request model handle."""

from dataclasses import dataclass

from langchain_core.language_models import BaseChatModel

from docstream.core.exceptions import BadRequestError

MODEL_ID_SEPARATOR = "/"


def parse_model_identifier(identifier: str | None) -> tuple[str, str]:
    """Split ``"provider/model"`` into its two segments.

    Purely syntactic: whether the provider or model exists is only found out
    when the provider is actually called.

    Raises:
        BadRequestError: empty identifier, not exactly one separator, or an
            empty segment on either side
    """
    if not identifier or identifier.count(MODEL_ID_SEPARATOR) != 1:
        raise BadRequestError(surface="api", detail=f"Invalid model identifier: {identifier!r}")

    provider, name = identifier.split(MODEL_ID_SEPARATOR)
    if not provider or not name:
        raise BadRequestError(surface="api", detail=f"Invalid model identifier: {identifier!r}")

    return provider, name


@dataclass(frozen=True, eq=False)
class ModelHandle:
    """A resolved model, valid for the request that asked for it."""

    identifier: str
    provider: str
    name: str
    model: BaseChatModel

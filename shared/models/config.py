"""Configuration models: per-client env declarations and the RAG settings object."""

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig

DEFAULT_PROMPT_TEMPLATE = """Answer the question based on the knowledge base content below. If the knowledge base contains nothing relevant, ignore it.

Knowledge base content:
{context}

User question:
{query}"""

_DELIMITER_ESCAPES = {"\\n": "\n", "\\t": "\t", "\\r": "\r"}


def _decode_escapes(value: str) -> str:
    for escaped, char in _DELIMITER_ESCAPES.items():
        value = value.replace(escaped, char)
    return value


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable, without the client prefix.
        val_type (str): The expected type of the value ("string", "number", "bool", "list").
        default (str | int | bool | list | None): Default value if the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None


class RAGSettings(BaseModel):
    """Retrieval and chunking settings handed to the knowledge services at construction.

    Attributes:
        is_enabled:             Gate for retrieval; when False, search short-circuits to no results.
        top_k:                  Maximum number of ranked chunks returned per query.
        chunk_delimiter:        Exact substring used to split documents into segments.
        chunk_size:             Maximum characters per chunk (force-split pieces excepted).
        use_custom_prompt:      Use custom_prompt_template instead of the default template.
        custom_prompt_template: Template with {context} and {query} placeholders.
    """

    is_enabled: bool = True
    top_k: int = 3
    chunk_delimiter: str = "\n"
    chunk_size: int = 500
    use_custom_prompt: bool = False
    custom_prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    @classmethod
    def from_helper_config(cls, helper_config: HelperConfig) -> "RAGSettings":
        """Build the settings from RAG_* environment variables.

        Non-positive sizes fall back to their defaults. The delimiter may be
        written with backslash escapes (e.g. "\\n\\n") since raw newlines are
        awkward in env files.

        Args:
            helper_config (HelperConfig): The configuration helper to read from.

        Returns:
            RAGSettings: The resolved settings.
        """
        defaults = cls()
        top_k = int(helper_config.get_number_val("RAG_TOP_K", default=defaults.top_k))
        chunk_size = int(helper_config.get_number_val("RAG_CHUNK_SIZE", default=defaults.chunk_size))
        raw_delimiter = helper_config.get_string_val("RAG_CHUNK_DELIMITER", default="", strip=False)
        return cls(
            is_enabled=helper_config.get_bool_val("RAG_ENABLED", default=defaults.is_enabled),
            top_k=top_k if top_k > 0 else defaults.top_k,
            chunk_delimiter=_decode_escapes(raw_delimiter) if raw_delimiter else defaults.chunk_delimiter,
            chunk_size=chunk_size if chunk_size > 0 else defaults.chunk_size,
            use_custom_prompt=helper_config.get_bool_val("RAG_USE_CUSTOM_PROMPT", default=defaults.use_custom_prompt),
            custom_prompt_template=helper_config.get_string_val(
                "RAG_CUSTOM_PROMPT_TEMPLATE", default=defaults.custom_prompt_template, strip=False
            ),
        )

    def get_prompt_template(self) -> str:
        """Return the template currently in effect."""
        return self.custom_prompt_template if self.use_custom_prompt else DEFAULT_PROMPT_TEMPLATE

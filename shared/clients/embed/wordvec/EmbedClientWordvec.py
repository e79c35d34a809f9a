import asyncio
import re

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions import ModelUnavailableError, NoTokensError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

_CJK = "\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff"
# CJK characters become single tokens, everything else is split into words
_TOKEN_PATTERN = re.compile(rf"[{_CJK}]|[^\W{_CJK}]+")


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens of a text, CJK runs split into single characters."""
    return _TOKEN_PATTERN.findall(text.lower())


class EmbedClientWordvec(EmbedClientInterface):
    """Local embedding provider: mean of pre-trained word vectors.

    The vector file uses the GloVe / word2vec text layout, one "<word> <f1> <f2> ..."
    per line with an optional "<count> <dim>" header line. It is loaded lazily on
    first use and only once.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.model_path = self.get_config_val("MODEL_PATH", default=None, val_type="string")
        self._vectors: dict[str, list[float]] | None = None
        self._dimension = 0
        self._load_lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Wordvec"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="MODEL_PATH", val_type="string", default=None),
        ]

    @property
    def dimension(self) -> int:
        """Vector size of the loaded model, 0 before the first load."""
        return self._dimension

    ##########################################
    ################ MODEL ###################
    ##########################################

    def _read_model_file(self) -> tuple[dict[str, list[float]], int]:
        vectors: dict[str, list[float]] = {}
        dimension = 0
        try:
            with open(self.model_path, "r", encoding="utf-8") as handle:
                for line_no, line in enumerate(handle):
                    parts = line.rstrip().split(" ")
                    if line_no == 0 and len(parts) == 2 and all(p.isdigit() for p in parts):
                        continue
                    if len(parts) < 2:
                        continue
                    try:
                        vector = [float(value) for value in parts[1:]]
                    except ValueError:
                        continue
                    if not dimension:
                        dimension = len(vector)
                    if len(vector) != dimension:
                        continue
                    vectors[parts[0].lower()] = vector
        except (OSError, UnicodeDecodeError) as exc:
            raise ModelUnavailableError(f"Could not read word vector model '{self.model_path}': {exc}") from exc

        if not vectors:
            raise ModelUnavailableError(f"Word vector model '{self.model_path}' contains no vectors.")
        return vectors, dimension

    async def _ensure_loaded(self) -> dict[str, list[float]]:
        async with self._load_lock:
            if self._vectors is None:
                self.logging.info("Loading word vector model from %s...", self.model_path)
                self._vectors, self._dimension = await asyncio.to_thread(self._read_model_file)
                self.logging.info("Loaded %d word vectors of dimension %d.", len(self._vectors), self._dimension)
            return self._vectors

    def _mean_pool(self, vectors: dict[str, list[float]], text: str) -> list[float]:
        found = [vectors[token] for token in tokenize(text) if token in vectors]
        if not found:
            raise NoTokensError(f"No known words in text: '{text[:50]}'")

        pooled = [0.0] * self._dimension
        for vector in found:
            for i, value in enumerate(vector):
                pooled[i] += value
        return [value / len(found) for value in pooled]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _compute_embeddings(self, texts: list[str]) -> list[list[float]]:
        vectors = await self._ensure_loaded()
        return await asyncio.to_thread(lambda: [self._mean_pool(vectors, text) for text in texts])

    async def do_healthcheck(self) -> bool:
        try:
            await self._ensure_loaded()
        except ModelUnavailableError as exc:
            self.logging.warning("Word vector model is not usable: %s", exc)
            return False
        return True

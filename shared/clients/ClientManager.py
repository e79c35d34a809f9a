from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface


class ClientManager:
    """
    Base manager that instantiates the client engine selected by <TYPE>_ENGINE.

    Engines are resolved by convention: engine "sqlite" of type "store" maps to
    shared.clients.store.sqlite.StoreClientSqlite.
    """

    # set by subclasses
    client_type: str = ""
    default_engine: str | None = None

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: The name of the engine, capitalized. E.g. "Sqlite"

        Raises:
            ValueError: If no engine is specified in the configuration and there is no default.
        """
        engine = self.helper_config.get_string_val(f"{self.client_type.upper()}_ENGINE", default=self.default_engine)
        if not engine:
            raise ValueError(f"No {self.client_type} engine specified in configuration.")

        # lowercase all and uppercase first letter for class lookup and display
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Initializes the client based on the engine specified in the configuration.

        Returns:
            ClientInterface: An instance of the engine's client class.

        Raises:
            ValueError: If the engine is unknown.
        """
        engine = self._get_engine_from_env()
        type_name = self.client_type.capitalize()
        class_name = f"{type_name}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {type_name} engine specified: '{engine}'. Error: {e}") from e

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", type_name, engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client

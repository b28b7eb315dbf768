from shared.helper.HelperConfig import HelperConfig
from shared.clients.index.IndexClientInterface import IndexClientInterface

class IndexClientManager:
    """
    Instantiates the vector index client selected by INDEX_ENGINE.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the index engine from ENV configuration, e.g. "qdrant" → "Qdrant".

        Raises:
            ValueError: If INDEX_ENGINE is not set.
        """
        engine = self.helper_config.get_string_val("INDEX_ENGINE")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> IndexClientInterface:
        """
        Imports shared.clients.index.<engine>.IndexClient<Engine> and instantiates it.

        Raises:
            ValueError: If the engine is unknown.
        """
        engine = self._get_engine_from_env()
        className = f"IndexClient{engine}"
        try:
            module = __import__(
                f"shared.clients.index.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Index engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated Index client for engine: %s", engine)
        return client

    def get_client(self) -> IndexClientInterface:
        return self.client

from shared.clients.ClientManager import ClientManager
from shared.clients.store.StoreClientInterface import StoreClientInterface


class StoreClientManager(ClientManager):
    """
    Manager class to handle the Store client selected by STORE_ENGINE.
    """

    client_type = "store"
    default_engine = "sqlite"

    def get_client(self) -> StoreClientInterface:
        """
        Returns the instantiated Store client.

        Returns:
            StoreClientInterface: The Store client instance.
        """
        return self.client

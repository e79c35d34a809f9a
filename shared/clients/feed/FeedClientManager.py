from shared.clients.ClientManager import ClientManager
from shared.clients.feed.FeedClientInterface import FeedClientInterface


class FeedClientManager(ClientManager):
    """
    Manager class to handle the Feed client selected by FEED_ENGINE.
    """

    client_type = "feed"
    default_engine = "dreamzero"

    def get_client(self) -> FeedClientInterface:
        """
        Returns the instantiated Feed client.

        Returns:
            FeedClientInterface: The Feed client instance.
        """
        return self.client

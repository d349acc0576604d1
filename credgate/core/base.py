from credgate.core.background import BackgroundDispatcher
from credgate.storage.base import Storage
from credgate.utils.clock import Clock, utc_now
from credgate.utils.logger import get_logger


class BaseService:
    """Base service class with storage dependency injection."""

    def __init__(
        self,
        storage: Storage,
        clock: Clock = utc_now,
        dispatcher: BackgroundDispatcher | None = None,
    ):
        self.storage = storage
        self.clock = clock
        self.dispatcher = dispatcher or BackgroundDispatcher()
        self.logger = get_logger(self.__class__.__name__)

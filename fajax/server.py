import logging
from typing import Optional

from .auth import AuthServer
from .config import API, NetworkConfig
from .client import PlannerClient
from .cookies import CookieJar
from .network import Network
from .policy import DelayPolicy, DropPolicy
from .store import TaskStore, UserStore
from .tasks import TasksServer

logger = logging.getLogger(__name__)


class SimulatedBackend:
    """One network, one browser cookie jar and the two servers behind it."""

    def __init__(self, config: Optional[NetworkConfig] = None,
                 delay_policy: Optional[DelayPolicy] = None,
                 drop_policy: Optional[DropPolicy] = None,
                 cookie_jar: Optional[CookieJar] = None) -> None:
        self.config = config or NetworkConfig()
        self.network = Network(self.config, delay_policy, drop_policy)
        self.cookie_jar = cookie_jar if cookie_jar is not None else CookieJar()

        self.users = UserStore()
        self.tasks = TaskStore()
        self.auth_server = AuthServer(self.users)
        self.tasks_server = TasksServer(self.tasks, self.auth_server)

        self._started = False

    def start(self) -> "SimulatedBackend":
        if self._started:
            return self
        self._started = True
        self.network.register_server(API.AUTH_BASE, self.auth_server)
        self.network.register_server(API.TASKS_BASE, self.tasks_server)
        logger.debug("backend started with %s", self.config)
        return self

    def client(self, timeout: int = 0) -> PlannerClient:
        return PlannerClient(self.network, self.cookie_jar, users=self.users, timeout=timeout)

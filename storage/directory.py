"""Read-only topic and user lookup."""

from __future__ import annotations

from threading import Lock
from typing import Dict, Iterable, List, Optional

from core import DeepDiveConfig, Topic, UserProfile


class InMemoryDirectory:
    """Topics, users and their deep dive preferences."""

    def __init__(
        self,
        topics: Optional[Iterable[Topic]] = None,
        users: Optional[Iterable[UserProfile]] = None,
        configs: Optional[Iterable[DeepDiveConfig]] = None,
    ) -> None:
        self._topics: Dict[str, Topic] = {}
        self._users: Dict[str, UserProfile] = {}
        self._configs: Dict[str, DeepDiveConfig] = {}
        self._lock = Lock()
        for topic in topics or []:
            self.add_topic(topic)
        for user in users or []:
            self.add_user(user)
        for config in configs or []:
            self.set_config(config)

    def add_topic(self, topic: Topic) -> None:
        with self._lock:
            self._topics[topic.id] = topic

    def add_user(self, user: UserProfile) -> None:
        with self._lock:
            self._users[user.id] = user

    def set_config(self, config: DeepDiveConfig) -> None:
        with self._lock:
            self._configs[config.user_id] = config

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        with self._lock:
            topic = self._topics.get(topic_id)
            return topic.model_copy() if topic else None

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_config(self, user_id: str) -> Optional[DeepDiveConfig]:
        with self._lock:
            config = self._configs.get(user_id)
            return config.model_copy(deep=True) if config else None

    def enabled_configs(self) -> List[DeepDiveConfig]:
        """Configs of users with deep dives switched on, in insertion order."""
        with self._lock:
            return [config.model_copy(deep=True) for config in self._configs.values() if config.enabled]

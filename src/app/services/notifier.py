from abc import ABC, abstractmethod


class INotifier(ABC):
    """Out-of-band delivery of links and codes (email in production)"""

    @abstractmethod
    async def send_magic_link(self, email: str, link: str) -> None:
        pass

    @abstractmethod
    async def send_password_reset(self, email: str, link: str) -> None:
        pass

    @abstractmethod
    async def send_login_pin(self, email: str, pin: str) -> None:
        pass

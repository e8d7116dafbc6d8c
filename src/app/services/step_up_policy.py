from abc import ABC, abstractmethod

from src.app.services.settings import SecuritySettings


class StepUpPolicy(ABC):
    """Decides whether a successful password login needs a PIN"""

    @abstractmethod
    def should_trigger_pin(self, login_count: int) -> bool:
        pass


class EveryNthLoginPolicy(StepUpPolicy):
    def __init__(self, every_n: int):
        self.every_n = every_n

    def should_trigger_pin(self, login_count: int) -> bool:
        return self.every_n > 0 and login_count > 0 and login_count % self.every_n == 0


class NeverStepUpPolicy(StepUpPolicy):
    def should_trigger_pin(self, login_count: int) -> bool:
        return False


def build_step_up_policy(settings: SecuritySettings) -> StepUpPolicy:
    if not settings.pin_enabled or settings.pin_every_n_logins <= 0:
        return NeverStepUpPolicy()
    return EveryNthLoginPolicy(settings.pin_every_n_logins)

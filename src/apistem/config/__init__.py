from .settings import PresenterSettings, load_settings

__all__ = ["PresenterSettings", "load_settings"]

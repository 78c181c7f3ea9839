from .auth_api import AuthApi
from .apps_api import AppsApi
from .calories_api import CaloriesApi

__all__ = ["AuthApi", "AppsApi", "CaloriesApi"]

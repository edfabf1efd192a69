from dishka import Provider as DishkaProvider

from fnrun.util.di.scope import Scope


class Provider(DishkaProvider):
    """Base for fnrun DI providers. Defaults to the process-wide scope."""

    scope = Scope.APP

import re
import logging
from enum import Enum, auto

logger = logging.getLogger(__name__)


class Multiplicity(Enum):
    SINGLE = auto()
    MANY = auto()


def _resolve_model(model):
    if not isinstance(model, str):
        return model

    from polyrel.model import BaseModel
    pending = list(BaseModel.__subclasses__())
    while pending:
        model_cls = pending.pop()
        if model_cls.__name__ == model:
            return model_cls
        pending.extend(model_cls.__subclasses__())

    raise ValueError(f"Could not resolve model class '{model}'")


def _humanize(name: str) -> str:
    words = re.sub(r'(?<=[a-z0-9])([A-Z])', r' \1', name).replace('_', ' ').split()
    return ' '.join(words).lower().capitalize()


class Junction:
    def __init__(self, model, link: dict[str, str]):
        # link maps junction attribute -> owner attribute
        self._model = model
        self.link = dict(link)

    @property
    def model_class(self):
        return _resolve_model(self._model)

    def __repr__(self):
        name = self._model if isinstance(self._model, str) else self._model.__name__
        return f"<Junction {name} {self.link}>"


class Relationship:
    def __init__(
        self,
        target_model,
        link: dict[str, str],
        many: bool = False,
        via: Junction = None,
        inverse_of: str = None,
        cascade: str = None,
        label: str = None,
        form_name: str = None,
    ):
        # link maps target attribute -> owner attribute, or
        # target attribute -> junction attribute when via is set
        if not link:
            raise ValueError("A relationship needs at least one linked attribute")
        self._target_model = target_model
        self.link = dict(link)
        self.many = many
        self.via = via
        self.inverse_of = inverse_of
        self.cascade = cascade or ""
        self._label = label
        self._form_name = form_name
        self._key = None
        self._owner_class = None

    def __set_name__(self, owner, name):
        self._key = name
        self._owner_class = owner
        if '_relationships' not in owner.__dict__:
            owner._relationships = dict(getattr(owner, '_relationships', {}))
        owner._relationships[name] = self

    @property
    def name(self) -> str:
        return self._key

    @property
    def target_class(self):
        return _resolve_model(self._target_model)

    @property
    def multiplicity(self) -> Multiplicity:
        return Multiplicity.MANY if self.many else Multiplicity.SINGLE

    @property
    def owner_holds_key(self) -> bool:
        return self.inverse_of is not None

    @property
    def delete_orphans(self) -> bool:
        return "delete-orphan" in self.cascade

    @property
    def label(self) -> str:
        return self._label or _humanize(self._key)

    @property
    def form_name(self) -> str:
        return self._form_name or self.target_class.__name__

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return instance._get_related(self._key)

    def __set__(self, instance, value):
        message = f"Relation '{self._key}' of {type(instance).__name__} is read-only, use assign('{self._key}', value) instead"
        logger.error(message)
        raise AttributeError(message)

    def __repr__(self):
        return f"<Relationship {self._key} {self.multiplicity.name.lower()}>"

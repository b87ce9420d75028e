"""Polymorphic sender/receiver support.

Any model can send or receive messages by mixing in Addressable. Message
rows store the receiver as an explicit (type, id) pair; the type string
resolves back to the model class through a registry filled in at class
creation time.
"""

from sqlalchemy.orm import Session

_registry: dict[str, type] = {}


class Addressable:
    """Mixin for models that can be a message sender or receiver.

    Subclasses may set ``addressable_type``; it defaults to the class name.
    """

    addressable_type: str = ""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("addressable_type"):
            cls.addressable_type = cls.__name__
        _registry[cls.addressable_type] = cls

    @property
    def address(self) -> tuple[str, int]:
        return (self.addressable_type, self.id)


def address_of(entity) -> tuple[str, int] | None:
    if entity is None:
        return None
    if not isinstance(entity, Addressable):
        raise TypeError(f"{type(entity).__name__} cannot send or receive messages")
    return entity.address


def model_for(addressable_type: str) -> type | None:
    return _registry.get(addressable_type)


def resolve(db: Session | None, addressable_type: str | None, entity_id: int | None):
    """Load the entity behind a (type, id) pair, or None."""
    if db is None or addressable_type is None or entity_id is None:
        return None
    model = model_for(addressable_type)
    if model is None:
        return None
    return db.get(model, entity_id)

# encoding: utf8

u"""The reference data schema.

Only what is needed to make sense of a Gen III save is kept: species, moves
and items, each keyed by the number the games use for it.

Columns have an info dictionary with these keys:
- format: The format of a text column. Can be one of:
  - plaintext: Normal Unicode text (widely used in names)
  - identifier: A fan-made identifier in the [-_a-z0-9]* format. Not intended
    for translation.
"""

from sqlalchemy import Column, MetaData
from sqlalchemy.orm import declarative_base, DeclarativeMeta
from sqlalchemy.types import Integer, SmallInteger, Unicode


class TableSuperclass(object):
    """Superclass for declarative tables, to give them some generic niceties
    like stringification.
    """
    def __str__(self):
        """Be as useful as possible.  Show the primary key, and an identifier
        if we've got one.
        """
        typename = u'.'.join((__name__, type(self).__name__))

        pk_constraint = self.__table__.primary_key
        if not pk_constraint:
            return u"<%s object at %x>" % (typename, id(self))

        pk = u', '.join(str(getattr(self, column.name))
            for column in pk_constraint.columns)
        try:
            return u"<%s object (%s): %s>" % (typename, pk, self.identifier)
        except AttributeError:
            return u"<%s object (%s)>" % (typename, pk)

    def __repr__(self):
        return str(self)

mapped_classes = []
class TableMetaclass(DeclarativeMeta):
    def __init__(cls, name, bases, attrs):
        super(TableMetaclass, cls).__init__(name, bases, attrs)
        if hasattr(cls, '__tablename__'):
            mapped_classes.append(cls)

metadata = MetaData()
TableBase = declarative_base(metadata=metadata, cls=TableSuperclass, metaclass=TableMetaclass)


class Species(TableBase):
    u"""A species of Pokémon, as of Generation III."""
    __tablename__ = 'species'
    __singlename__ = 'species'
    id = Column(Integer, primary_key=True, nullable=False,
        doc=u"The national Pokédex number")
    identifier = Column(Unicode(79), nullable=False,
        doc=u"An identifier",
        info=dict(format='identifier'))
    name = Column(Unicode(79), nullable=False, index=True,
        doc=u"The English name",
        info=dict(format='plaintext'))
    growth_rate = Column(Unicode(79), nullable=False,
        doc=u"Identifier of the experience curve, e.g. medium-slow",
        info=dict(format='identifier'))
    gender_rate = Column(Integer, nullable=False,
        doc=u"The chance of this Pokémon being female, in eighths; or -1 for genderless")
    type1 = Column(Unicode(79), nullable=False,
        doc=u"Identifier of the first type",
        info=dict(format='identifier'))
    type2 = Column(Unicode(79), nullable=True,
        doc=u"Identifier of the second type, if any",
        info=dict(format='identifier'))
    ability1 = Column(Unicode(79), nullable=False,
        doc=u"Name of the ability in the first slot",
        info=dict(format='plaintext'))
    ability2 = Column(Unicode(79), nullable=True,
        doc=u"Name of the ability in the second slot, if any",
        info=dict(format='plaintext'))
    hp = Column(SmallInteger, nullable=False,
        doc=u"Base HP")
    attack = Column(SmallInteger, nullable=False,
        doc=u"Base Attack")
    defense = Column(SmallInteger, nullable=False,
        doc=u"Base Defense")
    special_attack = Column(SmallInteger, nullable=False,
        doc=u"Base Special Attack")
    special_defense = Column(SmallInteger, nullable=False,
        doc=u"Base Special Defense")
    speed = Column(SmallInteger, nullable=False,
        doc=u"Base Speed")

    def base_stat(self, stat_identifier):
        """Returns the base stat for e.g. 'special-attack'"""
        return getattr(self, stat_identifier.replace('-', '_'))

    @property
    def types(self):
        return tuple(t for t in (self.type1, self.type2) if t)


class Move(TableBase):
    u"""A technique or attack a Pokémon can learn to use."""
    __tablename__ = 'moves'
    __singlename__ = 'move'
    id = Column(Integer, primary_key=True, nullable=False,
        doc=u"The move's index in the games")
    identifier = Column(Unicode(79), nullable=False,
        doc=u"An identifier",
        info=dict(format='identifier'))
    name = Column(Unicode(79), nullable=False, index=True,
        doc=u"The English name",
        info=dict(format='plaintext'))
    type = Column(Unicode(79), nullable=False,
        doc=u"Identifier of the move's type",
        info=dict(format='identifier'))
    pp = Column(SmallInteger, nullable=False,
        doc=u"The move's base PP (Power Points)")


class Item(TableBase):
    u"""An Item from the games, like "Poké Ball" or "Bicycle"."""
    __tablename__ = 'items'
    __singlename__ = 'item'
    id = Column(Integer, primary_key=True, nullable=False,
        doc=u"The item's Gen III index")
    identifier = Column(Unicode(79), nullable=False,
        doc=u"An identifier",
        info=dict(format='identifier'))
    name = Column(Unicode(79), nullable=False, index=True,
        doc=u"The English name",
        info=dict(format='plaintext'))
    pocket = Column(Unicode(79), nullable=False,
        doc=u"Identifier of the bag pocket the item goes in",
        info=dict(format='identifier'))

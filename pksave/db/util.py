"""Helpers for common ways to work with reference data queries

`get` raises when nothing matches.  The `*_name` helpers are for display
only: they never raise, and give an empty string for anything unknown.
"""

import logging

from sqlalchemy.orm.exc import NoResultFound

from pksave.db import tables

log = logging.getLogger(__name__)

### Getter

def get(session, table, identifier=None, name=None, id=None):
    """Get one object from the database.

    session: The session to use (from pksave.db.connect())
    table: The table to select from (such as pksave.db.tables.Move)

    identifier: Identifier of the object
    name: The name of the object
    id: The ID number of the object

    All conditions must match, so it's not a good idea to specify more than one
    of identifier/name/id at once.

    If zero or more than one objects matching the criteria are found, the
    appropriate SQLAlchemy exception is raised.
    """

    if id is not None:
        # ASSUMPTION: id is the primary key of the table.
        result = session.get(table, id)
        if result is None:
            # Keep the API
            raise NoResultFound
        return result

    query = session.query(table)

    if identifier is not None:
        query = query.filter_by(identifier=identifier)

    if name is not None:
        query = query.filter_by(name=name)

    return query.one()

### Display names

def _name(session, table, id):
    if not id or session is None:
        return u''
    try:
        return get(session, table, id=id).name
    except NoResultFound:
        log.debug('No %s with id %r', table.__singlename__, id)
        return u''

def species_name(session, national_id):
    return _name(session, tables.Species, national_id)

def move_name(session, move_id):
    return _name(session, tables.Move, move_id)

def item_name(session, item_id):
    return _name(session, tables.Item, item_id)

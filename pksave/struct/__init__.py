# encoding: utf8
u"""
Handles reading and encryption/decryption of Gen III Pokémon save data.

See: https://bulbapedia.bulbagarden.net/wiki/Pok%C3%A9mon_data_substructures_(Generation_III)

The on-disk record is a 32-byte header followed by 48 bytes split into four
12-byte groups.  The groups are shuffled according to the personality value
and XORed with the personality and original trainer id.
"""

import random
import struct
from collections import namedtuple

from sqlalchemy.orm.exc import NoResultFound

from pksave.db import tables, util
from pksave.errors import InvalidDataLength, UnknownSpecies
from pksave.formulae import (
    GROWTH_RATES, MAX_EFFORT, MAX_IV, MAX_TOTAL_EFFORT, NATURES,
    calculated_hp, calculated_stat, experience_for_level, gender_from_personality,
    gender_threshold, level_for_experience, nature_modifier,
)
from pksave.struct._pokemon_struct import (
    BOX_RECORD_SIZE, LAST_JOHTO_SPECIES, NATIONAL_DEX_SIZE, PARTY_RECORD_SIZE,
    decode_text, encode_text, internal_species_ids, party_stats_struct,
    pokemon_struct, substructure_groups, substructure_orders,
)

STAT_IDENTIFIERS = (
    'hp', 'attack', 'defense', 'speed', 'special-attack', 'special-defense')

EMPTY_SPECIES_ID = internal_species_ids[0]


class TrainerID(namedtuple('TrainerID', ['public', 'secret'])):
    """A trainer id: the visible half and the secret half."""

    @classmethod
    def from_int(cls, value):
        return cls(value & 0xffff, value >> 16)

    def __int__(self):
        return self.secret << 16 | self.public


def national_id_from_internal(internal_id):
    u"""Returns the national dex number for a Gen III species id.

    0 means no species (an empty slot or an egg placeholder).  Returns None
    for the unused ids between Celebi and Treecko.
    """
    if internal_id in (0, EMPTY_SPECIES_ID):
        return 0
    elif internal_id <= LAST_JOHTO_SPECIES:
        return internal_id
    try:
        return internal_species_ids.index(internal_id) + LAST_JOHTO_SPECIES
    except ValueError:
        return None

def internal_id_from_national(national_id):
    if national_id == 0:
        return EMPTY_SPECIES_ID
    elif 0 < national_id <= LAST_JOHTO_SPECIES:
        return national_id
    elif LAST_JOHTO_SPECIES < national_id <= NATIONAL_DEX_SIZE:
        return internal_species_ids[national_id - LAST_JOHTO_SPECIES]
    raise UnknownSpecies(national_id)


def struct_proxy(path, dependent=[]):
    parents = path.split('.')
    name = parents.pop()

    def container(self):
        st = self.structure
        for parent in parents:
            st = st[parent]
        return st

    def getter(self):
        return container(self)[name]

    def setter(self, value):
        container(self)[name] = value
        for dep in dependent:
            delattr(self, dep)
        del self.blob

    return property(getter, setter)


def struct_text_proxy(name, length):
    def getter(self):
        return self.structure[name]

    def setter(self, value):
        # Keep what the game will read back: glyphs up to the first blank
        self.structure[name] = decode_text(encode_text(value, length))
        del self.blob

    return property(getter, setter)


def struct_frozenset_proxy(path, flags):
    def getter(self):
        bitstruct = self.structure[path]
        return frozenset(flag for flag in flags if bitstruct[flag])

    def setter(self, new_set):
        new_set = set(new_set)
        unknown = new_set.difference(flags)
        if unknown:
            raise ValueError('Unknown values: {0}'.format(', '.join(unknown)))
        bitstruct = self.structure[path]
        for flag in flags:
            bitstruct[flag] = flag in new_set
        del self.blob

    return property(getter, setter)


class cached_property(object):
    def __init__(self, getter, setter=None):
        self._getter = getter
        self._setter = setter
        self.cache_setter_value = True

    def setter(self, func):
        """With this setter, the value being set is automatically cached
        """
        self._setter = func
        self.cache_setter_value = True
        return self

    def complete_setter(self, func):
        """Setter without automatic caching of the set value
        """
        self._setter = func
        self.cache_setter_value = False
        return self

    def __get__(self, instance, owner):
        if instance is None:
            return self
        else:
            try:
                return instance._cached_properties[self]
            except AttributeError:
                instance._cached_properties = {}
            except KeyError:
                pass
            result = self._getter(instance)
            instance._cached_properties[self] = result
            return result

    def __set__(self, instance, value):
        if self._setter is None:
            raise AttributeError('Cannot set attribute')
        else:
            self._setter(instance, value)
            if self.cache_setter_value:
                try:
                    instance._cached_properties[self] = value
                except AttributeError:
                    instance._cached_properties = {self: value}
            # Setting anything but the blob itself makes the blob stale
            if type(instance).blob is not self:
                del instance.blob

    def __delete__(self, instance):
        try:
            del instance._cached_properties[self]
        except (AttributeError, KeyError):
            pass


class SaveFilePokemon(object):
    u"""An individual Pokémon, from the game's point of view.

    Handles translating between the on-disk encrypted form (the `blob`) and
    something vaguely intelligible.

    `offset` and `storage` ('party' or 'box') record where the Pokémon came
    from, so a `SaveFile` can write it back.
    """
    Stat = namedtuple('Stat', ['stat', 'base', 'gene', 'exp', 'calc'])

    def __init__(self, blob=None, offset=None, storage=None, session=None):
        u"""Wraps an encrypted Pokémon record in a friendly object.

        `blob` is either an 80-byte box record or a 100-byte party record.
        Without it, an empty box record is created.

        `session` is an optional database session. Either give it or fill it
            later with `use_database_session`
        """
        if blob is None:
            blob = bytes(BOX_RECORD_SIZE)

        self.offset = offset
        self.storage = storage
        self.session = session
        self.blob = blob

    def use_database_session(self, session):
        """Remembers the given database session.  Gotta call this (or give
        session to `__init__`) before you use the database properties like
        `species`, etc.
        """
        if self.session and self.session is not session:
            raise ValueError('Re-setting a session is not supported')
        self.session = session
        self._reset()

    ### Utility methods

    @staticmethod
    def encryption_key(personality, original_trainer_id):
        return personality ^ original_trainer_id

    @staticmethod
    def reciprocal_crypt(data, key):
        u"""XORs every 32-bit word of `data` with `key`.  Applying it twice
        gives back the original data.
        """
        words = struct.unpack('<12I', data)
        return struct.pack('<12I', *(word ^ key for word in words))

    @staticmethod
    def substructure_checksum(data):
        """Sum of the decrypted substructure's 16-bit words"""
        return sum(struct.unpack('<24H', data)) & 0xffff

    @staticmethod
    def shuffle_chunks(chunks, personality, reverse=False):
        """Given the four 12-byte groups in Growth, Attacks, Effort, Misc
        order, returns them in the order they are stored for this
        personality.  Pass reverse=True (and the stored order) to unshuffle
        instead.
        """
        order = substructure_orders[personality % 24]
        if reverse:
            return [chunks[order.index(group)] for group in 'GAEM']
        else:
            return [chunks['GAEM'.index(group)] for group in order]

    def _reset(self):
        for name in ('species', 'held_item', 'moves'):
            delattr(self, name)

    @cached_property
    def blob(self):
        st = self.structure
        chunks = []
        for group in 'GAEM':
            name, group_struct = substructure_groups[group]
            chunks.append(group_struct.build(st[name]))
        decrypted = b''.join(self.shuffle_chunks(chunks, st.personality))

        st.checksum = self.substructure_checksum(decrypted)
        st.data = self.reciprocal_crypt(decrypted, self.encryption_key(
            st.personality, int(self.original_trainer)))

        blob = pokemon_struct.build(st)
        if st.party is not None:
            blob += party_stats_struct.build(st.party)
        return blob

    @blob.setter
    def blob(self, blob):
        if len(blob) not in (BOX_RECORD_SIZE, PARTY_RECORD_SIZE):
            raise InvalidDataLength(BOX_RECORD_SIZE, len(blob))

        st = pokemon_struct.parse(blob[:BOX_RECORD_SIZE])
        key = self.encryption_key(st.personality, st.original_trainer_secret_id
            << 16 | st.original_trainer_id)
        decrypted = self.reciprocal_crypt(st.data, key)
        physical = [decrypted[i:i + 12] for i in range(0, 48, 12)]
        for group, chunk in zip('GAEM', self.shuffle_chunks(
                physical, st.personality, reverse=True)):
            name, group_struct = substructure_groups[group]
            st[name] = group_struct.parse(chunk)

        if len(blob) == PARTY_RECORD_SIZE:
            st.party = party_stats_struct.parse(blob[BOX_RECORD_SIZE:])
        else:
            st.party = None

        self.structure = st
        self._reset()

    @property
    def is_party(self):
        return self.structure.party is not None

    @property
    def box_blob(self):
        """The 80 bytes stored in a PC box, without party stats"""
        return self.blob[:BOX_RECORD_SIZE]

    ### Integrity

    @property
    def checksum(self):
        """The checksum stored in the header"""
        return self.structure.checksum

    @property
    def calculated_checksum(self):
        """The checksum of the substructure as currently decrypted"""
        self.blob
        st = self.structure
        key = self.encryption_key(st.personality, int(self.original_trainer))
        return self.substructure_checksum(self.reciprocal_crypt(st.data, key))

    @property
    def is_checksum_valid(self):
        return self.checksum == self.calculated_checksum

    ### Delicious data

    @property
    def is_empty(self):
        return self.structure.personality == 0

    @property
    def original_trainer(self):
        st = self.structure
        return TrainerID(st.original_trainer_id, st.original_trainer_secret_id)

    @original_trainer.setter
    def original_trainer(self, trainer_id):
        if not isinstance(trainer_id, TrainerID):
            trainer_id = TrainerID.from_int(trainer_id)
        st = self.structure
        st.original_trainer_id, st.original_trainer_secret_id = trainer_id
        del self.blob

    @property
    def is_shiny(self):
        u"""Returns true iff this Pokémon is shiny."""
        if self.is_empty:
            return False
        personality_msdw = self.structure.personality >> 16
        personality_lsdw = self.structure.personality & 0xffff
        return (
            self.structure.original_trainer_id
            ^ self.structure.original_trainer_secret_id
            ^ personality_msdw
            ^ personality_lsdw
        ) < 8

    personality = struct_proxy('personality')
    nickname = struct_text_proxy('nickname', 10)
    original_trainer_name = struct_text_proxy('original_trainer_name', 7)
    language = struct_proxy('language')
    is_bad_egg = struct_proxy('flags.is_bad_egg')
    has_species = struct_proxy('flags.has_species')
    markings = struct_frozenset_proxy('markings',
        ('circle', 'square', 'triangle', 'heart'))

    exp = struct_proxy('growth.exp')
    happiness = struct_proxy('growth.happiness')
    pp_ups = struct_proxy('growth.pp_ups')
    held_item_id = struct_proxy('growth.held_item_id', dependent=['held_item'])
    met_location_id = struct_proxy('misc.met_location_id')
    met_at_level = struct_proxy('misc.origins.met_at_level')
    original_version = struct_proxy('misc.origins.original_version')
    pokeball_id = struct_proxy('misc.origins.pokeball_id')
    is_egg = struct_proxy('misc.ivs.is_egg')
    ability_slot = struct_proxy('misc.ivs.ability_slot')
    ribbons = struct_proxy('misc.ribbons')

    @property
    def original_trainer_gender(self):
        if self.structure.misc.origins.original_trainer_female:
            return 'female'
        return 'male'

    @original_trainer_gender.setter
    def original_trainer_gender(self, gender):
        if gender not in ('male', 'female'):
            raise ValueError('Trainer gender must be male or female')
        self.structure.misc.origins.original_trainer_female = (
            gender == 'female')
        del self.blob

    @property
    def national_id(self):
        return national_id_from_internal(self.structure.growth.species_id)

    @national_id.setter
    def national_id(self, national_id):
        default_nickname = self.species_name.upper()
        self.structure.growth.species_id = internal_id_from_national(
            national_id)
        del self.species
        del self.blob
        # An unnamed Pokémon carries its species name; keep that in step
        if (default_nickname and self.nickname == default_nickname
                and self.species is not None):
            self.nickname = self.species_name.upper()

    @cached_property
    def species(self):
        if not self.national_id or self.session is None:
            return None
        try:
            return util.get(self.session, tables.Species, id=self.national_id)
        except NoResultFound:
            return None

    @property
    def species_name(self):
        if self.species is None:
            return u''
        return self.species.name

    @property
    def gender(self):
        if self.species is None:
            threshold = gender_threshold(None)
        else:
            threshold = gender_threshold(self.species.gender_rate)
        return gender_from_personality(self.structure.personality, threshold)

    @property
    def nature_index(self):
        return self.structure.personality % 25

    @property
    def nature(self):
        return NATURES[self.nature_index]

    @nature.setter
    def nature(self, nature):
        u"""Picks the closest personality value with the given nature.

        The low byte, and thus the gender, is kept.  Shininess and the
        substructure order generally change.
        """
        if isinstance(nature, str):
            if nature not in NATURES:
                raise ValueError('Unknown nature: %r' % (nature,))
            nature = NATURES.index(nature)
        elif not 0 <= nature < len(NATURES):
            raise ValueError('Unknown nature: %r' % (nature,))
        personality = self.structure.personality
        # 256 * 21 is 1 (mod 25), so this keeps the low byte
        personality += 256 * (21 * (nature - personality) % 25)
        if personality > 0xffffffff:
            personality -= 256 * 25
        self.personality = personality

    @property
    def growth_rate(self):
        if self.species is None or self.species.growth_rate not in GROWTH_RATES:
            return None
        return self.species.growth_rate

    @property
    def level(self):
        if self.growth_rate is not None:
            return level_for_experience(self.growth_rate, self.exp)
        elif self.is_party:
            return self.structure.party.level
        else:
            return None

    @level.setter
    def level(self, level):
        if self.growth_rate is None:
            raise ValueError("Can't set the level without the species' "
                "growth rate")
        self.exp = experience_for_level(self.growth_rate, level)
        if self.is_party:
            self.structure.party.level = level

    @property
    def party_stats(self):
        return self.structure.party

    @property
    def ability_name(self):
        species = self.species
        if species is None:
            return u''
        if self.ability_slot and species.ability2:
            return species.ability2
        return species.ability1 or u''

    @cached_property
    def held_item(self):
        held_item_id = self.held_item_id
        if held_item_id and self.session is not None:
            try:
                return util.get(self.session, tables.Item, id=held_item_id)
            except NoResultFound:
                return None
        return None

    @property
    def held_item_name(self):
        return util.item_name(self.session, self.held_item_id)

    @property
    def pokeball_name(self):
        # Ball numbers match their item ids
        return util.item_name(self.session, self.pokeball_id)

    @property
    def move_ids(self):
        return tuple(self.structure.attacks.move_ids)

    @move_ids.setter
    def move_ids(self, move_ids):
        move_ids = list(move_ids)
        if len(move_ids) > 4:
            raise ValueError('A Pokémon can only know four moves')
        self.structure.attacks.move_ids = move_ids + [0] * (4 - len(move_ids))
        del self.moves
        del self.blob

    @property
    def move_pp(self):
        return tuple(self.structure.attacks.move_pp)

    @move_pp.setter
    def move_pp(self, move_pp):
        move_pp = list(move_pp)
        if len(move_pp) > 4:
            raise ValueError('A Pokémon can only know four moves')
        self.structure.attacks.move_pp = move_pp + [0] * (4 - len(move_pp))
        del self.blob

    @cached_property
    def moves(self):
        u"""The known moves as `Move` rows; None for empty or unknown ones"""
        moves = []
        for move_id in self.move_ids:
            move = None
            if move_id and self.session is not None:
                try:
                    move = util.get(self.session, tables.Move, id=move_id)
                except NoResultFound:
                    pass
            moves.append(move)
        return tuple(moves)

    @property
    def move_names(self):
        return tuple(util.move_name(self.session, move_id)
            for move_id in self.move_ids)

    def set_move(self, slot, move_id):
        u"""Teaches a move in the given slot (0-3), with its full base PP."""
        if not 0 <= slot < 4:
            raise ValueError('Move slot must be between 0 and 3')
        pp = 0
        if move_id:
            if self.session is None:
                raise ValueError("Can't look up PP without a database session")
            try:
                pp = util.get(self.session, tables.Move, id=move_id).pp
            except NoResultFound:
                raise ValueError('Unknown move: %r' % (move_id,))
        attacks = self.structure.attacks
        attacks.move_ids[slot] = move_id
        attacks.move_pp[slot] = pp
        del self.moves
        del self.blob

    @property
    def genes(self):
        ivs = self.structure.misc.ivs
        return dict((stat, ivs['iv_' + stat.replace('-', '_')])
            for stat in STAT_IDENTIFIERS)

    @genes.setter
    def genes(self, genes):
        for stat, value in genes.items():
            if stat not in STAT_IDENTIFIERS:
                raise ValueError('Unknown stat: %r' % (stat,))
            if not 0 <= value <= MAX_IV:
                raise ValueError('IVs must be between 0 and %d' % MAX_IV)
        ivs = self.structure.misc.ivs
        for stat, value in genes.items():
            ivs['iv_' + stat.replace('-', '_')] = value
        del self.blob

    @property
    def effort(self):
        condition = self.structure.condition
        return dict((stat, condition['effort_' + stat.replace('-', '_')])
            for stat in STAT_IDENTIFIERS)

    @effort.setter
    def effort(self, effort):
        new_effort = self.effort
        for stat, value in effort.items():
            if stat not in STAT_IDENTIFIERS:
                raise ValueError('Unknown stat: %r' % (stat,))
            if not 0 <= value <= MAX_EFFORT:
                raise ValueError('EVs must be between 0 and %d' % MAX_EFFORT)
            new_effort[stat] = value
        if sum(new_effort.values()) > MAX_TOTAL_EFFORT:
            raise ValueError('EVs cannot total more than %d' % MAX_TOTAL_EFFORT)
        condition = self.structure.condition
        for stat, value in new_effort.items():
            condition['effort_' + stat.replace('-', '_')] = value
        del self.blob

    @property
    def stats(self):
        u"""The calculated stats, or an empty tuple if the species or level
        is unknown.
        """
        species = self.species
        level = self.level
        if species is None or level is None:
            return ()
        genes = self.genes
        effort = self.effort
        stats = []
        for stat in STAT_IDENTIFIERS:
            base = species.base_stat(stat)
            if stat == 'hp':
                calc = calculated_hp(base, level=level, iv=genes[stat],
                    effort=effort[stat])
            else:
                calc = calculated_stat(base, level=level, iv=genes[stat],
                    effort=effort[stat],
                    nature=nature_modifier(self.nature_index, stat))
            stats.append(self.Stat(
                stat=stat,
                base=base,
                gene=genes[stat],
                exp=effort[stat],
                calc=calc,
            ))
        return tuple(stats)

    ### Pokérus

    @property
    def pokerus(self):
        """'none', 'infected' or 'cured'"""
        pokerus = self.structure.misc.pokerus
        if not pokerus.strain:
            return 'none'
        elif pokerus.days:
            return 'infected'
        else:
            return 'cured'

    def infect(self, strain=None):
        if strain is None:
            strain = random.randint(1, 15)
        elif not 0 < strain < 16:
            raise ValueError('Pokérus strain must be between 1 and 15')
        pokerus = self.structure.misc.pokerus
        pokerus.strain = strain
        pokerus.days = strain % 4 + 1
        del self.blob

    def cure(self):
        self.structure.misc.pokerus.days = 0
        del self.blob

    def remove_pokerus(self):
        pokerus = self.structure.misc.pokerus
        pokerus.strain = pokerus.days = 0
        del self.blob

    def export_dict(self):
        """Exports the pokemon as a YAML/JSON-compatible dict
        """
        if self.is_empty:
            return {}

        result = dict(
            species=dict(id=self.national_id, name=self.species_name),
            nickname=str(self.nickname),
            personality=self.personality,
            nature=self.nature,
            gender=self.gender,
            exp=self.exp,
            happiness=self.happiness,
            pokerus=self.pokerus,
        )
        result['original trainer'] = dict(
            id=self.structure.original_trainer_id,
            secret=self.structure.original_trainer_secret_id,
            name=str(self.original_trainer_name),
            gender=self.original_trainer_gender,
        )
        if self.level is not None:
            result['level'] = self.level
        if self.held_item_id:
            result['held item'] = dict(
                id=self.held_item_id, name=self.held_item_name)
        if self.pokeball_id:
            result['pokeball'] = dict(
                id=self.pokeball_id, name=self.pokeball_name)
        if self.species is not None:
            result['ability'] = self.ability_name
            result['types'] = list(self.species.types)
        result['moves'] = [
            dict(id=move_id, name=name, pp=pp)
            for move_id, name, pp
            in zip(self.move_ids, self.move_names, self.move_pp)
            if move_id]
        result['genes'] = self.genes
        result['effort'] = self.effort
        for key in ('is_egg', 'is_shiny', 'is_bad_egg'):
            if getattr(self, key):
                result[key.replace('_', ' ')] = True
        if not self.is_checksum_valid:
            result['bad checksum'] = True
        return result

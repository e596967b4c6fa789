# encoding: utf8
u"""Reading and writing whole Gen III save files.

A 128KB save holds two copies of the game (blocks A and B) of 14 sections
each.  The game alternates between them, so the copy with the higher save
index is the current one.  Sections are stored in a rotating order; each
knows its own id from its footer.

See: https://bulbapedia.bulbagarden.net/wiki/Save_data_structure_(Generation_III)
"""

import enum
import logging
import struct
from collections import namedtuple

from construct import Array, Bytes, Int8ul, Int16ul, Int32ul, Struct

from pksave.errors import ChecksumMismatch, InvalidDataLength, SectionNotFound
from pksave.struct import SaveFilePokemon, TrainerID
from pksave.struct._pokemon_struct import (
    BOX_RECORD_SIZE, PARTY_RECORD_SIZE, PokemonStringAdapter, decode_text)

log = logging.getLogger(__name__)

SECTION_SIZE = 0x1000
SECTION_DATA_SIZE = 0xFF4
SECTIONS_PER_BLOCK = 14
BLOCK_SIZE = SECTION_SIZE * SECTIONS_PER_BLOCK
SECTION_SIGNATURE = 0x08012025
SAVE_INDEX_SENTINEL = 0xFFFFFFFF

BLOCK_OFFSETS = (('A', 0x0000), ('B', BLOCK_SIZE))


class SectionID(enum.IntEnum):
    TRAINER_INFO = 0
    TEAM_ITEMS = 1
    GAME_STATE = 2
    MISC_DATA = 3
    RIVAL_INFO = 4
    PC_BUFFER_A = 5
    PC_BUFFER_B = 6
    PC_BUFFER_C = 7
    PC_BUFFER_D = 8
    PC_BUFFER_E = 9
    PC_BUFFER_F = 10
    PC_BUFFER_G = 11
    PC_BUFFER_H = 12
    PC_BUFFER_I = 13


section_footer_struct = Struct(
    'section_id' / Int16ul,
    'checksum' / Int16ul,
    'signature' / Int32ul,
    'save_index' / Int32ul,
)

trainer_info_struct = Struct(
    'name' / PokemonStringAdapter(7),
    'padding' / Bytes(1),
    'gender' / Int8ul,
    'unknown' / Bytes(1),
    'trainer_id' / Int32ul,
    'hours' / Int16ul,
    'minutes' / Int8ul,
    'seconds' / Int8ul,
    'frames' / Int8ul,
)

pocket_entry_struct = Struct(
    'item_id' / Int16ul,
    'quantity' / Int16ul,
)

### Game-dependent offsets

RUBY_SAPPHIRE = 'ruby-sapphire'
FIRERED_LEAFGREEN = 'firered-leafgreen'
EMERALD = 'emerald'

GAME_CODE_OFFSET = 0x00AC
FRLG_SECURITY_KEY_OFFSET = 0x0AF8

PARTY_OFFSETS = {
    RUBY_SAPPHIRE: 0x0238,
    FIRERED_LEAFGREEN: 0x0038,
    EMERALD: 0x0238,
}
PARTY_SLOTS = 6

MONEY_OFFSETS = {
    RUBY_SAPPHIRE: 0x0490,
    FIRERED_LEAFGREEN: 0x0290,
    EMERALD: 0x0490,
}
MAX_MONEY = 999999

#: (start, end) of each pocket within the team/items section
POCKET_RANGES = {
    RUBY_SAPPHIRE: {
        'items': (0x0560, 0x05B0),
        'key-items': (0x05B0, 0x0600),
        'balls': (0x0600, 0x0640),
        'tms': (0x0640, 0x0740),
        'berries': (0x0740, 0x07F8),
    },
    FIRERED_LEAFGREEN: {
        'items': (0x0310, 0x03B8),
        'key-items': (0x03B8, 0x0430),
        'balls': (0x0430, 0x0464),
        'tms': (0x0464, 0x054C),
        'berries': (0x054C, 0x05F8),
    },
    EMERALD: {
        'items': (0x0560, 0x05D8),
        'key-items': (0x05D8, 0x0650),
        'balls': (0x0650, 0x0690),
        'tms': (0x0690, 0x0790),
        'berries': (0x0790, 0x0848),
    },
}
POCKETS = ('items', 'key-items', 'balls', 'tms', 'berries')

### PC storage layout

PC_SECTION_IDS = tuple(range(SectionID.PC_BUFFER_A, SectionID.PC_BUFFER_I + 1))
PC_SECTION_SIZE = 0xF80
PC_LAST_SECTION_SIZE = 0x7D0
BOX_COUNT = 14
BOX_SLOTS = 30
BOX_DATA_OFFSET = 4
BOX_BYTES = BOX_SLOTS * BOX_RECORD_SIZE
BOX_NAMES_OFFSET = BOX_DATA_OFFSET + BOX_COUNT * BOX_BYTES
BOX_NAME_LENGTH = 9
WALLPAPERS_OFFSET = BOX_NAMES_OFFSET + BOX_COUNT * BOX_NAME_LENGTH


PocketEntry = namedtuple('PocketEntry', ['item_id', 'quantity'])
TrainerInfo = namedtuple('TrainerInfo',
    ['name', 'gender', 'trainer_id', 'play_time', 'game_code', 'game'])


class ByteRegion(namedtuple('ByteRegion', ['offset', 'length'])):
    """A fixed window onto a byte buffer.

    Every access checks that the window still fits the buffer.
    """

    @property
    def end(self):
        return self.offset + self.length

    def check(self, buffer):
        if self.end > len(buffer):
            raise InvalidDataLength(self.end, len(buffer))

    def read(self, buffer):
        self.check(buffer)
        return bytes(buffer[self.offset:self.end])

    def write(self, buffer, data):
        if len(data) != self.length:
            raise InvalidDataLength(self.length, len(data))
        self.check(buffer)
        buffer[self.offset:self.end] = data

    def subregion(self, offset, length):
        """A region relative to this one, which must lie inside it"""
        if offset < 0 or offset + length > self.length:
            raise InvalidDataLength(self.length, offset + length)
        return ByteRegion(self.offset + offset, length)


def section_checksum(data):
    """The checksum the game stores in each section footer: the sum of all
    32-bit words, folded once into 16 bits.
    """
    words = struct.unpack('<%dI' % (len(data) // 4), data)
    total = sum(words) & 0xffffffff
    return ((total >> 16) + (total & 0xffff)) & 0xffff


def newer_block(index_a, index_b):
    """Picks the current block ('A' or 'B') from the two save indices.

    Block A only wins with a strictly greater index; an index of 0xFFFFFFFF
    means block A was never written.
    """
    if index_a == SAVE_INDEX_SENTINEL:
        return 'B'
    elif index_a > index_b:
        return 'A'
    else:
        return 'B'


class Section(object):
    """One 4KB section of a save block"""

    FOOTER_OFFSET = SECTION_DATA_SIZE

    def __init__(self, buffer, offset):
        self.buffer = buffer
        self.region = ByteRegion(offset, SECTION_SIZE)
        self.region.check(buffer)
        self.payload = self.region.subregion(0, SECTION_DATA_SIZE)

    def __repr__(self):
        return '<Section %r at 0x%05x>' % (self.section_id, self.offset)

    @property
    def offset(self):
        return self.region.offset

    def read_u16(self, offset):
        return struct.unpack('<H', self.region.subregion(offset, 2)
            .read(self.buffer))[0]

    def read_u32(self, offset):
        return struct.unpack('<I', self.region.subregion(offset, 4)
            .read(self.buffer))[0]

    @property
    def footer(self):
        return section_footer_struct.parse(self.region.subregion(
            self.FOOTER_OFFSET, section_footer_struct.sizeof())
            .read(self.buffer))

    @property
    def section_id(self):
        """The section id, or None if it isn't one the game uses"""
        section_id = self.footer.section_id
        if section_id < SECTIONS_PER_BLOCK:
            return SectionID(section_id)
        return None

    @property
    def checksum(self):
        return self.footer.checksum

    @property
    def signature(self):
        return self.footer.signature

    @property
    def save_index(self):
        return self.footer.save_index

    def data(self):
        return self.payload.read(self.buffer)

    def write_data(self, offset, data):
        self.payload.subregion(offset, len(data)).write(self.buffer, data)

    def compute_checksum(self):
        return section_checksum(self.data())

    def write_checksum(self):
        checksum = self.compute_checksum()
        struct.pack_into('<H', self.buffer, self.offset + self.FOOTER_OFFSET + 2,
            checksum)
        return checksum

    def is_valid(self):
        return self.checksum == self.compute_checksum()

    def verify(self):
        computed = self.compute_checksum()
        if computed != self.checksum:
            raise ChecksumMismatch(computed, self.checksum,
                section_id=self.footer.section_id)


class SaveBlock(object):
    """One complete copy of the game: 14 sections in storage order"""

    def __init__(self, buffer, offset, name):
        self.name = name
        self.offset = offset
        self.sections = [Section(buffer, offset + n * SECTION_SIZE)
            for n in range(SECTIONS_PER_BLOCK)]

    def __repr__(self):
        return '<SaveBlock %s, save index %d>' % (self.name, self.save_index)

    def section(self, section_id):
        for section in self.sections:
            if section.section_id == section_id:
                return section
        raise SectionNotFound(section_id)

    @property
    def save_index(self):
        try:
            return self.section(SectionID.TRAINER_INFO).save_index
        except SectionNotFound:
            # Erased blocks have no ids; the first section still has an index
            return self.sections[0].save_index


def decrypt_pocket(data, key):
    """Decodes a pocket's slots into `PocketEntry`s"""
    if len(data) % pocket_entry_struct.sizeof():
        raise InvalidDataLength(pocket_entry_struct.sizeof(),
            len(data) % pocket_entry_struct.sizeof())
    count = len(data) // pocket_entry_struct.sizeof()
    key &= 0xffff
    return [PocketEntry(entry.item_id, entry.quantity ^ key)
        for entry in Array(count, pocket_entry_struct).parse(data)]

def encrypt_pocket(entries, key):
    key &= 0xffff
    return Array(len(entries), pocket_entry_struct).build([
        dict(item_id=item_id, quantity=quantity ^ key)
        for item_id, quantity in entries])


class PCBuffer(object):
    u"""The PC storage system, spread over the last nine sections of a block.

    The sections are concatenated in id order into one logical buffer; the
    last one only holds 2000 bytes.  Offsets handed out for Pokémon are
    offsets into that logical buffer.
    """

    def __init__(self, block, session=None):
        self.session = session
        self.sections = sorted((block.section(section_id)
            for section_id in PC_SECTION_IDS), key=lambda s: s.section_id)
        self.regions = [
            section.payload.subregion(0, self.chunk_size(section))
            for section in self.sections]
        self.buffer = self.sections[0].buffer

    @staticmethod
    def chunk_size(section):
        if section.section_id == PC_SECTION_IDS[-1]:
            return PC_LAST_SECTION_SIZE
        return PC_SECTION_SIZE

    @property
    def size(self):
        return sum(region.length for region in self.regions)

    def data(self):
        return b''.join(region.read(self.buffer) for region in self.regions)

    def split(self, data=None):
        """Cuts the logical buffer back into one chunk per section"""
        if data is None:
            data = self.data()
        if len(data) != self.size:
            raise InvalidDataLength(self.size, len(data))
        chunks = []
        start = 0
        for region in self.regions:
            chunks.append(bytes(data[start:start + region.length]))
            start += region.length
        return chunks

    @property
    def current_box(self):
        return struct.unpack('<I', self.data()[:BOX_DATA_OFFSET])[0]

    @staticmethod
    def slot_offset(box, slot):
        return BOX_DATA_OFFSET + box * BOX_BYTES + slot * BOX_RECORD_SIZE

    def box(self, box):
        u"""Returns the 30 Pokémon in the given box (0-13), empty slots
        included.
        """
        if not 0 <= box < BOX_COUNT:
            raise IndexError('There are only %d boxes' % BOX_COUNT)
        data = self.data()
        pokemon = []
        for slot in range(BOX_SLOTS):
            offset = self.slot_offset(box, slot)
            pokemon.append(SaveFilePokemon(
                data[offset:offset + BOX_RECORD_SIZE],
                offset=offset, storage='box', session=self.session))
        return pokemon

    def box_name(self, box):
        offset = BOX_NAMES_OFFSET + box * BOX_NAME_LENGTH
        return decode_text(self.data()[offset:offset + BOX_NAME_LENGTH])

    def wallpaper(self, box):
        return self.data()[WALLPAPERS_OFFSET + box]

    def save(self, pokemon):
        offset = pokemon.offset
        if (offset is None or offset < BOX_DATA_OFFSET
                or (offset - BOX_DATA_OFFSET) % BOX_RECORD_SIZE
                or offset + BOX_RECORD_SIZE > BOX_NAMES_OFFSET):
            raise ValueError('Not a box slot offset: %r' % (offset,))
        self.write(offset, pokemon.box_blob)

    def write(self, offset, data):
        """Writes `data` at `offset` in the logical buffer, and updates the
        checksum of every section it touches.
        """
        end = offset + len(data)
        if offset < 0 or end > self.size:
            raise InvalidDataLength(self.size, end)
        logical = bytearray(self.data())
        logical[offset:end] = data

        start = 0
        for section, region, chunk in zip(
                self.sections, self.regions, self.split(logical)):
            if start < end and offset < start + region.length:
                region.write(self.buffer, chunk)
                section.write_checksum()
                log.debug('Rewrote PC section %d', section.section_id)
            start += region.length


class SaveFile(object):
    u"""A whole save file, held in memory.

    `data` is the raw file contents; it is copied.  Nothing is written to
    disk: use `to_bytes` to get the edited file back.
    """

    def __init__(self, data, session=None):
        if len(data) < 2 * BLOCK_SIZE:
            raise InvalidDataLength(2 * BLOCK_SIZE, len(data))

        self.buffer = bytearray(data)
        self.session = session
        self.blocks = dict(
            (name, SaveBlock(self.buffer, offset, name))
            for name, offset in BLOCK_OFFSETS)

        index_a = self.blocks['A'].save_index
        index_b = self.blocks['B'].save_index
        self.current_block_name = newer_block(index_a, index_b)
        log.debug('Save indices: A %d, B %d; using block %s',
            index_a, index_b, self.current_block_name)

        self._pc_buffer = None
        self._check_sections()

    def _check_sections(self):
        for section in self.current_block.sections:
            footer = section.footer
            if section.section_id is None:
                log.warning('Unrecognized section id %d at 0x%05x',
                    footer.section_id, section.offset)
                continue
            if footer.signature != SECTION_SIGNATURE:
                log.warning('Section %d has signature 0x%08x',
                    footer.section_id, footer.signature)
            if not section.is_valid():
                log.warning('Section %d has a bad checksum',
                    footer.section_id)

    def to_bytes(self):
        return bytes(self.buffer)

    @property
    def current_block(self):
        return self.blocks[self.current_block_name]

    def section(self, section_id):
        return self.current_block.section(section_id)

    @property
    def pc_buffer(self):
        if self._pc_buffer is None:
            self._pc_buffer = PCBuffer(self.current_block, session=self.session)
        return self._pc_buffer

    ### Integrity

    def invalid_sections(self):
        """Sections of the current block whose checksum doesn't match"""
        return [section for section in self.current_block.sections
            if not section.is_valid()]

    def verify(self):
        for section in self.current_block.sections:
            section.verify()

    def fix_checksums(self):
        """Recomputes every checksum of the current block; returns the
        sections that changed.
        """
        fixed = self.invalid_sections()
        for section in fixed:
            section.write_checksum()
        return fixed

    ### Trainer

    @property
    def game_code(self):
        return self.section(SectionID.TRAINER_INFO).read_u32(GAME_CODE_OFFSET)

    @property
    def game(self):
        """The version group: Ruby/Sapphire, FireRed/LeafGreen or Emerald"""
        game_code = self.game_code
        if game_code == 0:
            return RUBY_SAPPHIRE
        elif game_code == 1:
            return FIRERED_LEAFGREEN
        else:
            return EMERALD

    @property
    def security_key(self):
        """The XOR key protecting money and item quantities"""
        game = self.game
        if game == RUBY_SAPPHIRE:
            return 0
        elif game == FIRERED_LEAFGREEN:
            return self.section(SectionID.TRAINER_INFO).read_u32(
                FRLG_SECURITY_KEY_OFFSET)
        else:
            # Emerald keeps the key where the others keep the game code
            return self.game_code

    @property
    def trainer(self):
        data = self.section(SectionID.TRAINER_INFO).data()
        info = trainer_info_struct.parse(data[:trainer_info_struct.sizeof()])
        return TrainerInfo(
            name=str(info.name),
            gender='female' if info.gender else 'male',
            trainer_id=TrainerID.from_int(info.trainer_id),
            play_time=(info.hours, info.minutes, info.seconds),
            game_code=self.game_code,
            game=self.game,
        )

    @property
    def money(self):
        section = self.section(SectionID.TEAM_ITEMS)
        return section.read_u32(MONEY_OFFSETS[self.game]) ^ self.security_key

    @money.setter
    def money(self, money):
        if not 0 <= money <= MAX_MONEY:
            raise ValueError('Money must be between 0 and %d' % MAX_MONEY)
        section = self.section(SectionID.TEAM_ITEMS)
        section.write_data(MONEY_OFFSETS[self.game],
            struct.pack('<I', money ^ self.security_key))
        section.write_checksum()

    ### Pokémon

    @property
    def party_count(self):
        section = self.section(SectionID.TEAM_ITEMS)
        return section.read_u32(PARTY_OFFSETS[self.game] - 4)

    def _party_region(self):
        section = self.section(SectionID.TEAM_ITEMS)
        return section, section.payload.subregion(
            PARTY_OFFSETS[self.game], PARTY_SLOTS * PARTY_RECORD_SIZE)

    def party(self):
        u"""Returns all six party slots, empty ones included."""
        section, region = self._party_region()
        data = region.read(self.buffer)
        pokemon = []
        for slot in range(PARTY_SLOTS):
            start = slot * PARTY_RECORD_SIZE
            pokemon.append(SaveFilePokemon(
                data[start:start + PARTY_RECORD_SIZE],
                offset=region.offset + start, storage='party',
                session=self.session))
        return pokemon

    def pc_box(self, box):
        return self.pc_buffer.box(box)

    def save_pokemon(self, pokemon, storage=None):
        u"""Writes a Pokémon back where it came from.

        `storage` defaults to the Pokémon's own; party Pokémon go back to
        their absolute offset, box Pokémon to their PC buffer offset.
        """
        if storage is None:
            storage = pokemon.storage

        if storage == 'party':
            section, region = self._party_region()
            offset = pokemon.offset
            if (offset is None or not region.offset <= offset < region.end
                    or (offset - region.offset) % PARTY_RECORD_SIZE):
                raise ValueError('Not a party slot offset: %r' % (offset,))
            blob = pokemon.blob
            if len(blob) != PARTY_RECORD_SIZE:
                raise InvalidDataLength(PARTY_RECORD_SIZE, len(blob))
            ByteRegion(offset, PARTY_RECORD_SIZE).write(self.buffer, blob)
            section.write_checksum()
            log.debug('Wrote party Pokémon at 0x%05x', offset)
        elif storage == 'box':
            self.pc_buffer.save(pokemon)
            log.debug(u'Wrote box Pokémon at PC offset %d', pokemon.offset)
        else:
            raise ValueError('Unknown storage: %r' % (storage,))

    ### Items

    def _pocket_region(self, pocket):
        try:
            start, end = POCKET_RANGES[self.game][pocket]
        except KeyError:
            raise ValueError('Unknown pocket: %r' % (pocket,))
        section = self.section(SectionID.TEAM_ITEMS)
        return section, section.payload.subregion(start, end - start)

    def pocket_capacity(self, pocket):
        section, region = self._pocket_region(pocket)
        return region.length // pocket_entry_struct.sizeof()

    def pocket(self, pocket):
        """Returns every slot of the pocket as `PocketEntry`s, empty ones
        included.
        """
        section, region = self._pocket_region(pocket)
        return decrypt_pocket(region.read(self.buffer), self.security_key)

    def save_pocket(self, pocket, entries):
        """Replaces the pocket's contents.  Missing slots are emptied."""
        section, region = self._pocket_region(pocket)
        capacity = region.length // pocket_entry_struct.sizeof()
        entries = [PocketEntry(*entry) for entry in entries]
        if len(entries) > capacity:
            raise InvalidDataLength(region.length,
                len(entries) * pocket_entry_struct.sizeof())
        for entry in entries:
            if not (0 <= entry.item_id <= 0xffff
                    and 0 <= entry.quantity <= 0xffff):
                raise ValueError('Bad pocket entry: %r' % (entry,))
        entries += [PocketEntry(0, 0)] * (capacity - len(entries))
        region.write(self.buffer, encrypt_pocket(entries, self.security_key))
        section.write_checksum()

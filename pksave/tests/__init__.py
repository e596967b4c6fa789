# encoding: utf8
u"""Builders for raw save data used across the tests.

Records and save files are put together with plain `struct` packing rather
than with pksave's own constructs, so the code under test is checked against
an independent encoder.
"""

import struct

# Order of the Growth, Attacks, Effort and Misc groups for each value of
# personality % 24
SUBSTRUCTURE_ORDERS = [
    'GAEM', 'GAME', 'GEAM', 'GEMA', 'GMAE', 'GMEA',
    'AGEM', 'AGME', 'AEGM', 'AEMG', 'AMGE', 'AMEG',
    'EGAM', 'EGMA', 'EAGM', 'EAMG', 'EMGA', 'EMAG',
    'MGAE', 'MGEA', 'MAGE', 'MAEG', 'MEGA', 'MEAG',
]

# A level 5 Torchic in a party record, straight from a Ruby save
TORCHIC = bytes(bytearray([
    101, 231, 167, 198, 154, 166, 220, 6, 206, 201, 204, 189, 194, 195, 189,
    255, 1, 0, 2, 2, 195, 213, 226, 255, 255, 255, 255, 0, 49, 30, 0, 0, 255,
    65, 123, 193, 255, 65, 123, 192, 255, 65, 123, 192, 231, 64, 123, 192,
    103, 65, 123, 192, 255, 7, 123, 192, 255, 81, 254, 225, 69, 32, 147, 217,
    255, 65, 123, 192, 245, 65, 86, 192, 255, 65, 123, 192, 220, 105, 123,
    192, 0, 0, 0, 0, 5, 255, 20, 0, 20, 0, 11, 0, 10, 0, 9, 0, 14, 0, 10, 0,
]))

SECTION_SIZE = 0x1000
SECTION_DATA_SIZE = 0xFF4
BLOCK_SIZE = 14 * SECTION_SIZE
SIGNATURE = 0x08012025


def text(string, length):
    """Encodes capital letters and digits, terminated and padded with 0xFF"""
    encoded = bytearray()
    for char in string:
        if char.isdigit():
            encoded.append(0xA1 + int(char))
        else:
            encoded.append(0xBB + ord(char) - ord('A'))
    encoded.extend([0xFF] * (length - len(encoded)))
    return bytes(encoded)


def growth(species_id=0, held_item_id=0, exp=0, pp_ups=0, happiness=0):
    return struct.pack('<HHIBBH', species_id, held_item_id, exp, pp_ups,
        happiness, 0)

def attacks(move_ids=(), move_pp=()):
    move_ids = list(move_ids) + [0] * (4 - len(move_ids))
    move_pp = list(move_pp) + [0] * (4 - len(move_pp))
    return struct.pack('<4H4B', *(move_ids + move_pp))

def condition(effort=(0, 0, 0, 0, 0, 0), contest=(0, 0, 0, 0, 0, 0)):
    return struct.pack('<12B', *(tuple(effort) + tuple(contest)))

def misc(pokerus=0, met_location_id=0, pokeball_id=4, original_version=3,
        met_at_level=5, ivs=(0, 0, 0, 0, 0, 0), is_egg=False, ability_slot=0,
        ribbons=0):
    """`ivs` are in hp, attack, defense, speed, sp. attack, sp. defense
    order, as they are packed.
    """
    origins = pokeball_id << 11 | original_version << 7 | met_at_level
    iv_word = ability_slot << 31 | int(is_egg) << 30
    for n, iv in enumerate(ivs):
        iv_word |= iv << (5 * n)
    return struct.pack('<BBHII', pokerus, met_location_id, origins, iv_word,
        ribbons)


def record(personality, trainer_id, nickname='POKEMON', trainer_name='ASH',
        language=2, flags=2, markings=0, groups=None, party=None):
    u"""Builds an encrypted Pokémon record.

    `groups` maps 'G', 'A', 'E' and 'M' to 12-byte substructures; missing
    ones are zeroed.  `party` is a tuple of the party stats fields (level,
    current HP, max HP, attack, defense, speed, sp. attack, sp. defense);
    without it a box record is returned.
    """
    groups = dict(groups or {})
    for group in 'GAEM':
        groups.setdefault(group, bytes(12))
    plain = b''.join(groups[group]
        for group in SUBSTRUCTURE_ORDERS[personality % 24])
    checksum = sum(struct.unpack('<24H', plain)) & 0xffff
    key = personality ^ trainer_id
    encrypted = struct.pack('<12I',
        *(word ^ key for word in struct.unpack('<12I', plain)))

    blob = (struct.pack('<II', personality, trainer_id)
        + text(nickname, 10)
        + struct.pack('<BB', language, flags)
        + text(trainer_name, 7)
        + struct.pack('<BHH', markings, checksum, 0)
        + encrypted)
    if party is not None:
        level, stats = party[0], party[1:]
        blob += struct.pack('<IBB7H', 0, level, 0, *stats)
    return blob


def section_checksum(data):
    total = sum(struct.unpack('<%dI' % (len(data) // 4), data)) & 0xffffffff
    return ((total >> 16) + (total & 0xffff)) & 0xffff


def block(save_index, payloads=None, rotation=0, section_ids=None):
    """Builds one 14-section save block.

    `payloads` maps section ids to the bytes at the start of the section.
    Sections are stored rotated by `rotation`, as the game does.
    `section_ids` overrides the id written in each physical slot.
    """
    payloads = payloads or {}
    if section_ids is None:
        section_ids = [(position + rotation) % 14 for position in range(14)]
    data = bytearray(BLOCK_SIZE)
    for position, section_id in enumerate(section_ids):
        offset = position * SECTION_SIZE
        payload = payloads.get(section_id, b'')
        data[offset:offset + len(payload)] = payload
        checksum = section_checksum(
            bytes(data[offset:offset + SECTION_DATA_SIZE]))
        struct.pack_into('<HHII', data, offset + SECTION_DATA_SIZE,
            section_id, checksum, SIGNATURE, save_index)
    return data


def erased_block():
    return bytearray(b'\xff' * BLOCK_SIZE)


def trainer_payload(name='ASH', gender=0, trainer_id=0x06DCA69A,
        game_code=0, frlg_key=None, play_time=(12, 34, 56)):
    data = bytearray(SECTION_DATA_SIZE)
    data[0:7] = text(name, 7)
    hours, minutes, seconds = play_time
    struct.pack_into('<BxIHBB', data, 8, gender, trainer_id, hours, minutes,
        seconds)
    struct.pack_into('<I', data, 0xAC, game_code)
    if frlg_key is not None:
        struct.pack_into('<I', data, 0xAF8, frlg_key)
    return data


def team_payload(party=(), party_offset=0x238, money_offset=0x490, money=0,
        key=0, pockets=None):
    u"""`pockets` maps start offsets to lists of (item id, quantity)"""
    data = bytearray(SECTION_DATA_SIZE)
    struct.pack_into('<I', data, party_offset - 4, len(party))
    for n, blob in enumerate(party):
        start = party_offset + n * 100
        data[start:start + len(blob)] = blob
    struct.pack_into('<I', data, money_offset, money ^ key)
    for start, entries in (pockets or {}).items():
        for n, (item_id, quantity) in enumerate(entries):
            struct.pack_into('<HH', data, start + 4 * n, item_id,
                quantity ^ (key & 0xffff))
    return data


PC_CHUNK_SIZES = [0xF80] * 8 + [0x7D0]

def pc_payloads(logical):
    """Cuts a logical PC buffer into payloads for sections 5 to 13"""
    logical = bytes(logical) + bytes(sum(PC_CHUNK_SIZES) - len(logical))
    payloads = {}
    start = 0
    for section_id, size in zip(range(5, 14), PC_CHUNK_SIZES):
        payloads[section_id] = logical[start:start + size]
        start += size
    return payloads

def pc_logical(boxes=None, current_box=0, box_names=None):
    u"""`boxes` maps (box, slot) to 80-byte records"""
    logical = bytearray(sum(PC_CHUNK_SIZES))
    struct.pack_into('<I', logical, 0, current_box)
    for (box, slot), blob in (boxes or {}).items():
        start = 4 + box * 2400 + slot * 80
        logical[start:start + 80] = blob
    for box, name in (box_names or {}).items():
        start = 33604 + box * 9
        logical[start:start + 9] = text(name, 9)
    return logical


def save_file(current, other=None):
    """Two blocks: `other` in block A, `current` in block B"""
    if other is None:
        other = block(0)
    return bytes(other + current)

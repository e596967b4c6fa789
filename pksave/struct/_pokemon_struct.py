# encoding: utf8
u"""Defines the constructs for a single Gen III Pokémon as stored in a save
file: the unencrypted header, the four substructure groups, and the extra
stats kept only for party members.

The substructure groups are parsed one at a time; see
`pksave.struct.SaveFilePokemon` for the decryption and shuffling.
"""

from construct import (
    Adapter, Array, BitStruct, BitsInteger, ByteSwapped, Bytes, Flag, Int8ul,
    Int16ul, Int32ul, Struct,
)

#: Gen III keeps its own species order after Celebi; this maps national dex
#: numbers 251 + n to internal ids.  Entry 0 is the internal id used for
#: eggs and empty slots.
internal_species_ids = (
    412, 277, 278, 279, 280, 281, 282, 283, 284, 285, 286, 287, 288, 289,
    290, 291, 292, 293, 294, 295, 296, 297, 298, 299, 300, 304, 305, 309,
    310, 392, 393, 394, 311, 312, 306, 307, 364, 365, 366, 301, 302, 303,
    370, 371, 372, 335, 336, 350, 320, 315, 316, 322, 355, 382, 383, 384,
    356, 357, 337, 338, 353, 354, 386, 387, 363, 367, 368, 330, 331, 313,
    314, 339, 340, 321, 351, 352, 308, 332, 333, 334, 344, 345, 358, 359,
    380, 379, 348, 349, 323, 324, 326, 327, 318, 319, 388, 389, 390, 391,
    328, 329, 385, 317, 377, 378, 361, 362, 369, 411, 376, 360, 346, 347,
    341, 342, 343, 373, 374, 375, 381, 325, 395, 396, 397, 398, 399, 400,
    401, 402, 403, 407, 408, 404, 405, 406, 409, 410,
)
LAST_JOHTO_SPECIES = 251
NATIONAL_DEX_SIZE = 386

#: Physical order of the substructure groups for each `personality % 24`:
#: Growth, Attacks, Effort/condition, Misc.
substructure_orders = (
    'GAEM', 'GAME', 'GEAM', 'GEMA', 'GMAE', 'GMEA',
    'AGEM', 'AGME', 'AEGM', 'AEMG', 'AMGE', 'AMEG',
    'EGAM', 'EGMA', 'EAGM', 'EAMG', 'EMGA', 'EMAG',
    'MGAE', 'MGEA', 'MAGE', 'MAEG', 'MEGA', 'MEAG',
)

# The entire gen 3 (western) character table.  Anything missing shows up as
# a blank.  0xFF terminates strings in the game and is blank here too.
character_table_gen3 = {
    0x00: u' ',
    0x01: u'À',
    0x02: u'Á',
    0x03: u'Â',
    0x04: u'Ç',
    0x05: u'È',
    0x06: u'É',
    0x07: u'Ê',
    0x08: u'Ë',
    0x09: u'Ì',
    0x0B: u'Î',
    0x0C: u'Ï',
    0x0D: u'Ò',
    0x0E: u'Ó',
    0x0F: u'Ô',
    0x10: u'Œ',
    0x11: u'Ù',
    0x12: u'Ú',
    0x13: u'Û',
    0x14: u'Ñ',
    0x15: u'ß',
    0x16: u'à',
    0x17: u'á',
    0x19: u'ç',
    0x1A: u'è',
    0x1B: u'é',
    0x1C: u'ê',
    0x1D: u'ë',
    0x1E: u'ì',
    0x20: u'î',
    0x21: u'ï',
    0x22: u'ò',
    0x23: u'ó',
    0x24: u'ô',
    0x25: u'œ',
    0x26: u'ù',
    0x27: u'ú',
    0x28: u'û',
    0x29: u'ñ',
    0x2A: u'º',
    0x2B: u'ª',
    0x2C: u'ᵉʳ',
    0x2D: u'&',
    0x2E: u'+',
    0x34: u'Lv',
    0x35: u'=',
    0x36: u';',
    0x50: u'▯',
    0x51: u'¿',
    0x52: u'¡',
    0x5A: u'Í',
    0x5B: u'%',
    0x5C: u'(',
    0x5D: u')',
    0x68: u'â',
    0x6F: u'í',
    0x79: u'↑',
    0x7A: u'↓',
    0x7B: u'←',
    0x7C: u'→',
    0x7D: u'*',
    0x7E: u'*',
    0x7F: u'*',
    0x80: u'*',
    0x81: u'*',
    0x82: u'*',
    0x83: u'*',
    0x84: u'ᵉ',
    0x85: u'<',
    0x86: u'>',
    0xA0: u'ʳᵉ',
    0xA1: u'0',
    0xA2: u'1',
    0xA3: u'2',
    0xA4: u'3',
    0xA5: u'4',
    0xA6: u'5',
    0xA7: u'6',
    0xA8: u'7',
    0xA9: u'8',
    0xAA: u'9',
    0xAB: u'!',
    0xAC: u'?',
    0xAD: u'.',
    0xAE: u'-',
    0xAF: u'・',
    0xB0: u'…',
    0xB1: u'“',
    0xB2: u'”',
    0xB3: u'‘',
    0xB4: u'’',
    0xB5: u'♂',
    0xB6: u'♀',
    0xB7: u'$',
    0xB8: u',',
    0xB9: u'×',
    0xBA: u'/',
    0xBB: u'A',
    0xBC: u'B',
    0xBD: u'C',
    0xBE: u'D',
    0xBF: u'E',
    0xC0: u'F',
    0xC1: u'G',
    0xC2: u'H',
    0xC3: u'I',
    0xC4: u'J',
    0xC5: u'K',
    0xC6: u'L',
    0xC7: u'M',
    0xC8: u'N',
    0xC9: u'O',
    0xCA: u'P',
    0xCB: u'Q',
    0xCC: u'R',
    0xCD: u'S',
    0xCE: u'T',
    0xCF: u'U',
    0xD0: u'V',
    0xD1: u'W',
    0xD2: u'X',
    0xD3: u'Y',
    0xD4: u'Z',
    0xD5: u'a',
    0xD6: u'b',
    0xD7: u'c',
    0xD8: u'd',
    0xD9: u'e',
    0xDA: u'f',
    0xDB: u'g',
    0xDC: u'h',
    0xDD: u'i',
    0xDE: u'j',
    0xDF: u'k',
    0xE0: u'l',
    0xE1: u'm',
    0xE2: u'n',
    0xE3: u'o',
    0xE4: u'p',
    0xE5: u'q',
    0xE6: u'r',
    0xE7: u's',
    0xE8: u't',
    0xE9: u'u',
    0xEA: u'v',
    0xEB: u'w',
    0xEC: u'x',
    0xED: u'y',
    0xEE: u'z',
    0xEF: u'►',
    0xF0: u':',
    0xF1: u'Ä',
    0xF2: u'Ö',
    0xF3: u'Ü',
    0xF4: u'ä',
    0xF5: u'ö',
    0xF6: u'ü',
}
character_table_gen3_list = [
    character_table_gen3.get(byte, u' ') for byte in range(0x100)]

inverse_character_table_gen3 = {}
for byte, glyph in enumerate(character_table_gen3_list):
    # Several bytes share a glyph; the lowest one is used for encoding
    inverse_character_table_gen3.setdefault(glyph, byte)
del byte, glyph


class StringWithOriginal(str):
    pass


def decode_text(raw):
    u"""Decodes game text: the glyphs up to the first blank."""
    text = u''.join(character_table_gen3_list[byte] for byte in raw)
    return text.split(u' ')[0].strip()

def encode_text(text, length):
    u"""Encodes `text` into exactly `length` bytes, padded with blanks.

    Multi-character glyphs such as "Lv" are matched greedily.
    """
    encoded = bytearray()
    i = 0
    while i < len(text):
        for width in (2, 1):
            chunk = text[i:i + width]
            if len(chunk) == width and chunk in inverse_character_table_gen3:
                encoded.append(inverse_character_table_gen3[chunk])
                i += width
                break
        else:
            raise ValueError(u"Can't encode %r in Gen III text" % text[i])
    if len(encoded) > length:
        raise ValueError(u'%r does not fit in %d characters' % (text, length))
    encoded.extend([inverse_character_table_gen3[u' ']] * (length - len(encoded)))
    return bytes(encoded)


class PokemonStringAdapter(Adapter):
    u"""Adapter for names

    Encodes/decodes Pokémon-formatted text stored in a fixed-size Bytes
    field.

    Returns a str subclass that has an ``original`` attribute with the
    original unencoded value, complete with trash bytes.
    On write, if the ``original`` is found and still decodes to the string,
    it is written back untouched.
    """
    def __init__(self, length):
        super(PokemonStringAdapter, self).__init__(Bytes(length))
        self.length = length

    def _decode(self, obj, context, path):
        result = StringWithOriginal(decode_text(obj))
        result.original = obj  # save original with "trash bytes"
        return result

    def _encode(self, obj, context, path):
        original = getattr(obj, 'original', None)
        if original is not None and decode_text(original) == obj:
            return original
        return encode_text(obj, self.length)


class LeakyEnum(Adapter):
    """An Enum that allows unknown values"""
    def __init__(self, sub, **values):
        super(LeakyEnum, self).__init__(sub)
        self.values = values
        self.inverted_values = dict((v, k) for k, v in values.items())
        assert len(values) == len(self.inverted_values)

    def _encode(self, obj, context, path):
        return self.values.get(obj, obj)

    def _decode(self, obj, context, path):
        return self.inverted_values.get(obj, obj)


# Docs: https://bulbapedia.bulbagarden.net/wiki/Pok%C3%A9mon_data_structure_(Generation_III)

pokemon_struct = Struct(
    # Header; never encrypted
    'personality' / Int32ul,
    'original_trainer_id' / Int16ul,
    'original_trainer_secret_id' / Int16ul,
    'nickname' / PokemonStringAdapter(10),
    'language' / LeakyEnum(Int8ul,
        jp=1,
        en=2,
        fr=3,
        it=4,
        de=5,
        es=7,
    ),
    'flags' / BitStruct(
        'unused' / BitsInteger(5),
        'is_egg_name' / Flag,
        'has_species' / Flag,
        'is_bad_egg' / Flag,
    ),
    'original_trainer_name' / PokemonStringAdapter(7),
    'markings' / BitStruct(
        'unused' / BitsInteger(4),
        'heart' / Flag,
        'triangle' / Flag,
        'square' / Flag,
        'circle' / Flag,
    ),
    'checksum' / Int16ul,
    'padding' / Int16ul,

    # Encrypted and shuffled
    'data' / Bytes(48),
)

growth_struct = Struct(
    'species_id' / Int16ul,
    'held_item_id' / Int16ul,
    'exp' / Int32ul,
    'pp_ups' / Int8ul,
    'happiness' / Int8ul,
    'unknown' / Int16ul,
)

attacks_struct = Struct(
    'move_ids' / Array(4, Int16ul),
    'move_pp' / Array(4, Int8ul),
)

condition_struct = Struct(
    'effort_hp' / Int8ul,
    'effort_attack' / Int8ul,
    'effort_defense' / Int8ul,
    'effort_speed' / Int8ul,
    'effort_special_attack' / Int8ul,
    'effort_special_defense' / Int8ul,
    'contest_cool' / Int8ul,
    'contest_beauty' / Int8ul,
    'contest_cute' / Int8ul,
    'contest_smart' / Int8ul,
    'contest_tough' / Int8ul,
    'contest_feel' / Int8ul,
)

misc_struct = Struct(
    'pokerus' / BitStruct(
        'strain' / BitsInteger(4),
        'days' / BitsInteger(4),
    ),
    'met_location_id' / Int8ul,
    # Bit fields in a little-endian word: swap the bytes so construct can
    # read them most significant bit first
    'origins' / ByteSwapped(BitStruct(
        'original_trainer_female' / Flag,
        'pokeball_id' / BitsInteger(4),
        'original_version' / BitsInteger(4),
        'met_at_level' / BitsInteger(7),
    )),
    'ivs' / ByteSwapped(BitStruct(
        'ability_slot' / BitsInteger(1),
        'is_egg' / Flag,
        'iv_special_defense' / BitsInteger(5),
        'iv_special_attack' / BitsInteger(5),
        'iv_speed' / BitsInteger(5),
        'iv_defense' / BitsInteger(5),
        'iv_attack' / BitsInteger(5),
        'iv_hp' / BitsInteger(5),
    )),
    'ribbons' / Int32ul,
)

substructure_groups = {
    'G': ('growth', growth_struct),
    'A': ('attacks', attacks_struct),
    'E': ('condition', condition_struct),
    'M': ('misc', misc_struct),
}

party_stats_struct = Struct(
    'status' / Int32ul,
    'level' / Int8ul,
    'pokerus_remaining' / Int8ul,
    'current_hp' / Int16ul,
    'max_hp' / Int16ul,
    'attack' / Int16ul,
    'defense' / Int16ul,
    'speed' / Int16ul,
    'special_attack' / Int16ul,
    'special_defense' / Int16ul,
)

BOX_RECORD_SIZE = 80
PARTY_RECORD_SIZE = 100

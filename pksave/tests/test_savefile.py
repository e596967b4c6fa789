# encoding: utf8

import struct

import pytest

from pksave.errors import ChecksumMismatch, InvalidDataLength, SectionNotFound
from pksave.savefile import (
    BLOCK_SIZE, EMERALD, FIRERED_LEAFGREEN, RUBY_SAPPHIRE, PocketEntry,
    SaveFile, SectionID, decrypt_pocket, encrypt_pocket, newer_block,
    section_checksum,
)
from pksave.struct import SaveFilePokemon
from pksave.tests import (
    TORCHIC, attacks, block, erased_block, growth, pc_logical, pc_payloads,
    record, save_file, team_payload, trainer_payload,
)

parametrize = pytest.mark.parametrize

EMERALD_KEY = 0x1A2B3C4D
FRLG_KEY = 0x1234ABCD

def mudkip(personality=0x1234567D):
    return record(personality, 0x00013039, nickname='MUDKIP',
        groups=dict(G=growth(species_id=283, exp=135), A=attacks([33], [35])))

def ruby_save(rotation=0, pc=None, trainer=None, **team):
    payloads = {
        SectionID.TRAINER_INFO: trainer_payload(game_code=0, **(trainer or {})),
        SectionID.TEAM_ITEMS: team_payload(**team),
    }
    payloads.update(pc_payloads(pc if pc is not None else pc_logical()))
    return save_file(block(10, payloads, rotation=rotation))

def emerald_save(**team):
    payloads = {
        SectionID.TRAINER_INFO: trainer_payload(game_code=EMERALD_KEY),
        SectionID.TEAM_ITEMS: team_payload(key=EMERALD_KEY, **team),
    }
    return save_file(block(10, payloads, rotation=7))

def frlg_save(**team):
    payloads = {
        SectionID.TRAINER_INFO: trainer_payload(game_code=1,
            frlg_key=FRLG_KEY),
        SectionID.TEAM_ITEMS: team_payload(party_offset=0x38,
            money_offset=0x290, key=FRLG_KEY, **team),
    }
    return save_file(block(10, payloads, rotation=2))


### Checksums and blocks

def test_section_checksum():
    assert section_checksum(bytes(0xFF4)) == 0
    assert section_checksum(struct.pack('<2I', 0x00010002, 0x00030004)) == 10
    # The 32-bit sum wraps, then is folded once
    assert section_checksum(struct.pack('<2I', 0xFFFFFFFF, 2)) == 1
    assert section_checksum(struct.pack('<I', 0x80009000)) == 0x1000

    data = bytearray(0xFF4)
    data[100] = 0x80
    assert section_checksum(bytes(data)) == section_checksum(bytes(data))
    assert section_checksum(bytes(data)) != section_checksum(bytes(0xFF4))

@parametrize(('index_a', 'index_b', 'current'), [
    (6, 5, 'A'),
    (5, 5, 'B'),
    (4, 5, 'B'),
    (0xFFFFFFFF, 5, 'B'),
    (0xFFFFFFFF, 0xFFFFFFFF, 'B'),
    (0, 0xFFFFFFFF, 'B'),
])
def test_newer_block(index_a, index_b, current):
    assert newer_block(index_a, index_b) == current

def test_block_a_is_newer():
    newer = block(3, {0: trainer_payload(name='RED')})
    older = block(2, {0: trainer_payload(name='BLUE')})
    save = SaveFile(bytes(newer + older))
    assert save.current_block_name == 'A'
    assert save.trainer.name == u'RED'

def test_erased_block_a():
    save = SaveFile(save_file(block(1, {0: trainer_payload(name='MAY')}),
        other=erased_block()))
    assert save.current_block_name == 'B'
    assert save.current_block.save_index == 1
    assert save.trainer.name == u'MAY'

def test_rotated_sections():
    save = SaveFile(ruby_save(rotation=5, trainer=dict(name='BRENDAN')))
    assert save.current_block.sections[0].section_id == SectionID(5)
    assert save.section(SectionID.TRAINER_INFO).offset == BLOCK_SIZE + 9 * 0x1000
    assert save.trainer.name == u'BRENDAN'

def test_too_short():
    with pytest.raises(InvalidDataLength) as excinfo:
        SaveFile(bytes(BLOCK_SIZE))
    assert excinfo.value.expected == 2 * BLOCK_SIZE
    assert excinfo.value.found == BLOCK_SIZE

def test_section_not_found():
    section_ids = list(range(13)) + [0]
    save = SaveFile(save_file(block(1, section_ids=section_ids)))
    with pytest.raises(SectionNotFound) as excinfo:
        save.section(13)
    assert excinfo.value.section_id == 13
    with pytest.raises(SectionNotFound):
        save.pc_buffer

def test_unrecognized_section_id():
    section_ids = list(range(13)) + [0xFFFF]
    save = SaveFile(save_file(block(1, section_ids=section_ids)))
    assert save.current_block.sections[13].section_id is None

def test_verify_and_fix():
    data = bytearray(ruby_save())
    data[BLOCK_SIZE + 0x1000 + 0x10] ^= 0xFF
    save = SaveFile(bytes(data))

    assert [s.section_id for s in save.invalid_sections()] == [
        SectionID.TEAM_ITEMS]
    with pytest.raises(ChecksumMismatch) as excinfo:
        save.verify()
    assert excinfo.value.section_id == 1

    fixed = save.fix_checksums()
    assert len(fixed) == 1
    save.verify()
    assert SaveFile(save.to_bytes()).invalid_sections() == []

def test_data_is_copied():
    data = ruby_save()
    save = SaveFile(data)
    save.money = 500
    assert save.to_bytes() != data
    assert SaveFile(data).money == 0


### Trainer and game

def test_trainer():
    save = SaveFile(ruby_save(trainer=dict(name='WALLY', gender=1,
        trainer_id=0x06DCA69A, play_time=(99, 59, 30))))
    trainer = save.trainer
    assert trainer.name == u'WALLY'
    assert trainer.gender == 'female'
    assert trainer.trainer_id == (42650, 1756)
    assert trainer.play_time == (99, 59, 30)
    assert trainer.game == RUBY_SAPPHIRE

@parametrize(('game_code', 'game'), [
    (0, RUBY_SAPPHIRE),
    (1, FIRERED_LEAFGREEN),
    (2, EMERALD),
    (0xDEADBEEF, EMERALD),
])
def test_game(game_code, game):
    save = SaveFile(save_file(block(1, {0: trainer_payload(
        game_code=game_code)})))
    assert save.game_code == game_code
    assert save.game == game

def test_security_key():
    assert SaveFile(ruby_save()).security_key == 0
    assert SaveFile(emerald_save()).security_key == EMERALD_KEY
    assert SaveFile(frlg_save()).security_key == FRLG_KEY

@parametrize('build', [ruby_save, emerald_save, frlg_save])
def test_money(build):
    save = SaveFile(build(money=123456))
    assert save.money == 123456

    save.money = 999999
    reread = SaveFile(save.to_bytes())
    assert reread.money == 999999
    assert reread.invalid_sections() == []

    with pytest.raises(ValueError):
        save.money = 1000000

def test_money_is_encrypted():
    save = SaveFile(emerald_save(money=3000))
    section = save.section(SectionID.TEAM_ITEMS)
    assert section.read_u32(0x490) == 3000 ^ EMERALD_KEY


### Pokémon

def test_party():
    save = SaveFile(ruby_save(party=[TORCHIC]))
    assert save.party_count == 1
    party = save.party()
    assert len(party) == 6
    assert party[0].nickname == u'TORCHIC'
    assert party[0].storage == 'party'
    assert party[0].blob == TORCHIC
    assert all(pokemon.is_empty for pokemon in party[1:])

def test_frlg_party():
    save = SaveFile(frlg_save(party=[TORCHIC, TORCHIC]))
    assert save.party_count == 2
    assert [p.nickname for p in save.party()[:2]] == [u'TORCHIC'] * 2

def test_save_party_pokemon():
    data = ruby_save(party=[TORCHIC])
    save = SaveFile(data)
    torchic = save.party()[0]
    torchic.nickname = u'BLAZE'
    save.save_pokemon(torchic)

    edited = save.to_bytes()
    assert edited[:BLOCK_SIZE] == data[:BLOCK_SIZE]
    reread = SaveFile(edited)
    assert reread.invalid_sections() == []
    assert reread.party()[0].nickname == u'BLAZE'
    assert reread.party()[0].is_checksum_valid

def test_saved_nickname_matches_memory():
    save = SaveFile(ruby_save(party=[TORCHIC]))
    torchic = save.party()[0]
    torchic.nickname = u'MR MIME'
    save.save_pokemon(torchic)
    assert torchic.nickname == u'MR'
    assert SaveFile(save.to_bytes()).party()[0].nickname == torchic.nickname

def test_save_pokemon_bad_offset():
    save = SaveFile(ruby_save(party=[TORCHIC]))
    stray = SaveFilePokemon(TORCHIC, offset=3, storage='party')
    with pytest.raises(ValueError):
        save.save_pokemon(stray)
    with pytest.raises(ValueError):
        save.save_pokemon(SaveFilePokemon(TORCHIC), storage='daycare')


### Bag

def test_pocket():
    save = SaveFile(ruby_save(pockets={0x600: [(4, 10), (1, 1)]}))
    balls = save.pocket('balls')
    assert len(balls) == save.pocket_capacity('balls') == 16
    assert balls[:3] == [(4, 10), (1, 1), (0, 0)]

@parametrize('key', [0, 0xABCD, 0xFFFF1234])
def test_pocket_codec(key):
    entries = [(13, 1), (14, 0xFFFF), (0, 0)]
    encrypted = encrypt_pocket(entries, key)
    assert len(encrypted) == 12
    assert decrypt_pocket(encrypted, key) == entries
    with pytest.raises(InvalidDataLength):
        decrypt_pocket(encrypted[:-1], key)

def test_frlg_pocket():
    save = SaveFile(frlg_save(pockets={0x430: [(4, 5), (3, 1)]}))
    assert save.pocket('balls')[:2] == [PocketEntry(4, 5), PocketEntry(3, 1)]
    raw = save.section(SectionID.TEAM_ITEMS).read_u16(0x432)
    assert raw == 5 ^ 0xABCD

@parametrize(('build', 'capacity'), [
    (ruby_save, 20),
    (emerald_save, 30),
    (frlg_save, 42),
])
def test_pocket_capacity(build, capacity):
    assert SaveFile(build()).pocket_capacity('items') == capacity

def test_save_pocket():
    save = SaveFile(emerald_save())
    save.save_pocket('berries', [(133, 3), (139, 10)])
    reread = SaveFile(save.to_bytes())
    berries = reread.pocket('berries')
    assert berries[:2] == [(133, 3), (139, 10)]
    assert set(berries[2:]) == set([(0, 0)])
    assert reread.invalid_sections() == []

def test_save_pocket_errors():
    save = SaveFile(ruby_save())
    with pytest.raises(InvalidDataLength):
        save.save_pocket('key-items', [(259, 1)] * 21)
    with pytest.raises(ValueError):
        save.save_pocket('items', [(13, 0x10000)])
    with pytest.raises(ValueError):
        save.pocket('pokeblocks')


### PC

def test_pc_buffer_layout():
    save = SaveFile(ruby_save(rotation=11))
    pc = save.pc_buffer
    assert pc.size == 8 * 3968 + 2000
    assert [s.section_id for s in pc.sections] == list(range(5, 14))
    chunks = pc.split()
    assert [len(chunk) for chunk in chunks] == [3968] * 8 + [2000]
    assert b''.join(chunks) == pc.data()
    with pytest.raises(InvalidDataLength):
        pc.split(b'')

def test_pc_box():
    logical = pc_logical(current_box=13,
        boxes={(0, 0): mudkip(), (13, 29): mudkip(0x1234567E)},
        box_names={0: 'BOX1', 13: 'FAVES'})
    save = SaveFile(ruby_save(rotation=4, pc=logical))
    pc = save.pc_buffer
    assert pc.current_box == 13
    assert pc.box_name(0) == u'BOX1'
    assert pc.box_name(13) == u'FAVES'
    assert pc.wallpaper(0) == 0

    first = save.pc_box(0)
    assert len(first) == 30
    assert first[0].nickname == u'MUDKIP'
    assert first[0].national_id == 258
    assert first[0].offset == 4
    assert first[0].storage == 'box'
    assert first[1].is_empty

    last = save.pc_box(13)[29]
    assert last.offset == 4 + 13 * 2400 + 29 * 80
    assert last.personality == 0x1234567E

    with pytest.raises(IndexError):
        save.pc_box(14)

def test_save_box_pokemon_across_sections():
    # Box 2, slot 20 starts 44 bytes before the end of the first PC section
    logical = pc_logical(boxes={(1, 19): mudkip()})
    save = SaveFile(ruby_save(pc=logical))
    pkmn = save.pc_box(1)[19]
    assert pkmn.offset == 3924
    assert pkmn.nickname == u'MUDKIP'

    pkmn.exp = 560
    save.save_pokemon(pkmn)
    reread = SaveFile(save.to_bytes())
    assert reread.invalid_sections() == []
    assert reread.pc_box(1)[19].exp == 560
    assert reread.pc_box(1)[19].is_checksum_valid

def test_save_party_pokemon_into_box():
    save = SaveFile(ruby_save(party=[TORCHIC]))
    torchic = SaveFilePokemon(TORCHIC, offset=save.pc_buffer.slot_offset(2, 5))
    save.save_pokemon(torchic, storage='box')
    reread = SaveFile(save.to_bytes())
    boxed = reread.pc_box(2)[5]
    assert boxed.nickname == u'TORCHIC'
    assert not boxed.is_party
    assert boxed.box_blob == TORCHIC[:80]

def test_save_box_pokemon_bad_offset():
    save = SaveFile(ruby_save())
    with pytest.raises(ValueError):
        save.save_pokemon(SaveFilePokemon(TORCHIC, offset=5), storage='box')
    with pytest.raises(ValueError):
        save.save_pokemon(SaveFilePokemon(TORCHIC, offset=33604),
            storage='box')

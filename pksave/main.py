# encoding: utf8
import argparse
import json
import logging
import os
import sys

import sqlalchemy

import pksave.db
import pksave.db.load
from pksave import defaults
from pksave.errors import SaveDataError
from pksave.savefile import BOX_COUNT, POCKETS, SaveFile
from pksave.db import util


def main(junk, *argv):
    parser = create_parser()

    if len(argv) <= 0:
        parser.print_help()
        sys.exit()

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    try:
        args.func(parser, args)
    except SaveDataError as error:
        print("ERROR: %s" % error, file=sys.stderr)
        sys.exit(1)


def setuptools_entry():
    main(*sys.argv)


def create_parser():
    """Build and return an ArgumentParser.
    """
    # Slightly clumsy workaround to make both `load -v` and `-v load` work
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument(
        '-e', '--engine', dest='engine_uri', default=None,
        help=u'By default, all commands try to use a SQLite database '
            u'in the pksave install directory.  Use this option (or '
            u'a PKSAVE_DB_ENGINE environment variable) to specify an '
            u'alternate database.',
        )
    common_parser.add_argument(
        '-q', '--quiet', dest='verbose', action='store_false',
        help=u'Don\'t print system output.  This is the default for '
            'non-system commands.',
    )
    common_parser.add_argument(
        '-v', '--verbose', dest='verbose', default=False, action='store_true',
        help=u'Print system output and debug logging.',
    )

    parser = argparse.ArgumentParser(
        prog='pksave', description=u'Inspect and edit Gen III Pokémon saves',
        parents=[common_parser],
    )

    cmds = parser.add_subparsers(title='commands', metavar='<command>', help='commands')
    cmd_help = cmds.add_parser(
        'help', help=u'Display this message',
        parents=[common_parser])
    cmd_help.set_defaults(func=command_help)

    cmd_load = cmds.add_parser(
        'load', help=u'Load reference data into a database from CSV files',
        parents=[common_parser])
    cmd_load.set_defaults(func=command_load, verbose=True)
    cmd_load.add_argument(
        '-d', '--directory', dest='directory', default=None,
        help="directory containing the CSV files to load")
    cmd_load.add_argument(
        '-D', '--drop-tables', dest='drop_tables', default=False, action='store_true',
        help="drop all tables before loading data")
    cmd_load.add_argument(
        'tables', nargs='*',
        help="list of database tables to load (default: all)")

    cmd_dump = cmds.add_parser(
        'dump', help=u'Dump reference data from a database into CSV files',
        parents=[common_parser])
    cmd_dump.set_defaults(func=command_dump, verbose=True)
    cmd_dump.add_argument(
        '-d', '--directory', dest='directory', default=None,
        help="directory to place the dumped CSV files")
    cmd_dump.add_argument(
        'tables', nargs='*',
        help="list of database tables to dump (default: all)")

    cmd_status = cmds.add_parser(
        'status', help=u'Print which engine and csv directory would be used for other commands',
        parents=[common_parser])
    cmd_status.set_defaults(func=command_status, verbose=True)

    cmd_info = cmds.add_parser(
        'info', help=u'Show the trainer and game of a save file',
        parents=[common_parser])
    cmd_info.set_defaults(func=command_info)
    cmd_info.add_argument('savefile')

    cmd_party = cmds.add_parser(
        'party', help=u'List the party Pokémon',
        parents=[common_parser])
    cmd_party.set_defaults(func=command_party)
    cmd_party.add_argument('savefile')
    cmd_party.add_argument(
        '--json', dest='json', default=False, action='store_true',
        help="print full details as JSON")

    cmd_box = cmds.add_parser(
        'box', help=u'List the Pokémon in a PC box',
        parents=[common_parser])
    cmd_box.set_defaults(func=command_box)
    cmd_box.add_argument('savefile')
    cmd_box.add_argument(
        'box', type=int,
        help="box number, from 1 to %d" % BOX_COUNT)
    cmd_box.add_argument(
        '--json', dest='json', default=False, action='store_true',
        help="print full details as JSON")

    cmd_pocket = cmds.add_parser(
        'pocket', help=u'List the contents of a bag pocket',
        parents=[common_parser])
    cmd_pocket.set_defaults(func=command_pocket)
    cmd_pocket.add_argument('savefile')
    cmd_pocket.add_argument('pocket', choices=POCKETS)

    cmd_verify = cmds.add_parser(
        'verify', help=u'Check the section checksums of a save file',
        parents=[common_parser])
    cmd_verify.set_defaults(func=command_verify)
    cmd_verify.add_argument('savefile')

    cmd_fix = cmds.add_parser(
        'fix-checksums', help=u'Recompute the section checksums of a save file',
        parents=[common_parser])
    cmd_fix.set_defaults(func=command_fix_checksums)
    cmd_fix.add_argument('savefile')

    cmd_rename = cmds.add_parser(
        'rename', help=u'Give a party Pokémon a new nickname',
        parents=[common_parser])
    cmd_rename.set_defaults(func=command_rename)
    cmd_rename.add_argument('savefile')
    cmd_rename.add_argument('slot', type=int, help="party slot, from 1 to 6")
    cmd_rename.add_argument('nickname')

    return parser


def get_session(args):
    """Given a parsed options object, connects to the database and returns a
    session.
    """

    engine_uri = args.engine_uri
    got_from = 'command line'

    if engine_uri is None:
        engine_uri, got_from = defaults.get_default_db_uri_with_origin()

    session = pksave.db.connect(engine_uri)

    if args.verbose:
        print("Connected to database %(engine)s (from %(got_from)s)"
            % dict(engine=session.bind.url, got_from=got_from))

    return session


def get_reference_session(args):
    """Like `get_session`, but returns None if the database hasn't been
    loaded; names are then left blank.
    """
    session = get_session(args)
    if not sqlalchemy.inspect(session.bind).has_table(
            pksave.db.tables.Species.__tablename__):
        if args.verbose:
            print("Database is empty; run `pksave load` to see names")
        session.close()
        return None
    return session


def get_csv_directory(args):
    """Prints and returns the csv directory we're about to use."""

    csvdir = args.directory
    got_from = 'command line'

    if csvdir is None:
        csvdir, got_from = defaults.get_default_csv_dir_with_origin()

    if args.verbose:
        print("Using CSV directory %(csvdir)s (from %(got_from)s)"
            % dict(csvdir=csvdir, got_from=got_from))

    return csvdir


def open_save(args, session=None):
    with open(args.savefile, 'rb') as f:
        return SaveFile(f.read(), session=session)


def write_save(args, save):
    with open(args.savefile, 'wb') as f:
        f.write(save.to_bytes())


def describe_pokemon(pokemon):
    if pokemon.is_egg:
        return u'Egg'
    name = pokemon.species_name or u'#%s' % pokemon.national_id
    description = u'%s "%s"' % (name, pokemon.nickname)
    if pokemon.level is not None:
        description += u' Lv. %d' % pokemon.level
    if pokemon.is_shiny:
        description += u' (shiny)'
    return description


def print_pokemon_list(args, pokemon_list):
    if args.json:
        print(json.dumps([pokemon.export_dict() for pokemon in pokemon_list],
            indent=2, sort_keys=True, ensure_ascii=False))
        return

    for n, pokemon in enumerate(pokemon_list, 1):
        if pokemon.is_empty:
            continue
        print(u"%2d. %s" % (n, describe_pokemon(pokemon)))


### Plumbing commands

def command_dump(parser, args):
    session = get_session(args)
    directory = get_csv_directory(args)

    pksave.db.load.dump(
        session,
        directory=directory,
        tables=args.tables,
        verbose=args.verbose,
    )


def command_load(parser, args):
    session = get_session(args)
    directory = get_csv_directory(args)

    pksave.db.load.load(
        session,
        directory=directory,
        drop_tables=args.drop_tables,
        tables=args.tables,
        verbose=args.verbose,
    )


def command_status(parser, args):
    args.directory = None

    # Database, and a lame check for whether it's been inited at least once
    session = get_session(args)
    print("  - OK!  Connected successfully.")

    if get_reference_session(args) is not None:
        print("  - OK!  Database seems to contain some data.")
    else:
        print("  - WARNING: Database appears to be empty.")

    # CSV; simple checks that the dir exists
    csvdir = get_csv_directory(args)
    if not os.path.exists(csvdir):
        print("  - ERROR: No such directory!")
    elif not os.path.isdir(csvdir):
        print("  - ERROR: Not a directory!")
    else:
        print("  - OK!  Directory exists.")

        if os.access(csvdir, os.R_OK):
            print("  - OK!  Can read from directory.")
        else:
            print("  - ERROR: Can't read from directory!")

        if os.access(csvdir, os.W_OK):
            print("  - OK!  Can write to directory.")
        else:
            print("  - WARNING: Can't write to directory!  "
                "`dump` will not work.  You may need to sudo.")
    session.close()


### User-facing commands

def command_info(parser, args):
    save = open_save(args)
    trainer = save.trainer
    hours, minutes, seconds = trainer.play_time

    print(u"Trainer:    %s (%s)" % (trainer.name, trainer.gender))
    print(u"Trainer ID: %05d (secret %05d)" % trainer.trainer_id)
    print(u"Game:       %s" % trainer.game)
    print(u"Play time:  %d:%02d:%02d" % (hours, minutes, seconds))
    print(u"Money:      %d" % save.money)
    print(u"Party:      %d Pokémon" % save.party_count)
    print(u"Save block: %s (save index %d)" % (
        save.current_block_name, save.current_block.save_index))


def command_party(parser, args):
    session = get_reference_session(args)
    save = open_save(args, session=session)
    print_pokemon_list(args, save.party())


def command_box(parser, args):
    if not 1 <= args.box <= BOX_COUNT:
        parser.error("box must be between 1 and %d" % BOX_COUNT)
    session = get_reference_session(args)
    save = open_save(args, session=session)
    if not args.json:
        print(u"%s:" % (save.pc_buffer.box_name(args.box - 1)
            or u'Box %d' % args.box))
    print_pokemon_list(args, save.pc_box(args.box - 1))


def command_pocket(parser, args):
    session = get_reference_session(args)
    save = open_save(args, session=session)
    for entry in save.pocket(args.pocket):
        if not entry.item_id:
            continue
        name = util.item_name(session, entry.item_id) or u'#%d' % entry.item_id
        print(u"%-20s x%d" % (name, entry.quantity))


def command_verify(parser, args):
    save = open_save(args)
    invalid = save.invalid_sections()
    for section in invalid:
        print(u"Section %d: stored 0x%04x, computed 0x%04x" % (
            section.footer.section_id, section.checksum,
            section.compute_checksum()))
    if invalid:
        sys.exit(1)
    print("All checksums OK.")


def command_fix_checksums(parser, args):
    save = open_save(args)
    fixed = save.fix_checksums()
    if fixed:
        write_save(args, save)
    print("Fixed %d checksum(s)." % len(fixed))


def command_rename(parser, args):
    if not 1 <= args.slot <= 6:
        parser.error("slot must be between 1 and 6")
    save = open_save(args)
    pokemon = save.party()[args.slot - 1]
    if pokemon.is_empty:
        parser.error("party slot %d is empty" % args.slot)
    try:
        pokemon.nickname = args.nickname
    except ValueError as error:
        parser.error(str(error))
    save.save_pokemon(pokemon)
    write_save(args, save)
    print(u"Renamed to %s." % pokemon.nickname)


def command_help(parser, args):
    parser.print_help()


if __name__ == '__main__':
    main(*sys.argv)

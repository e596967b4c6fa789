"""CSV to database or vice versa."""

import csv
import fnmatch
import os.path
import sys

import sqlalchemy.exc
import sqlalchemy.sql.util
import sqlalchemy.types
from sqlalchemy import text

from pksave.db import metadata
from pksave.defaults import get_default_csv_dir


def _get_table_names(metadata, patterns):
    """Returns a list of table names from the given metadata.  If `patterns`
    exists, only tables matching one of the patterns will be returned.
    """
    if patterns:
        table_names = set()
        for pattern in patterns:
            if '.' in pattern or '/' in pattern:
                # If it looks like a filename, pull out just the table name
                _, filename = os.path.split(pattern)
                table_name, _ = os.path.splitext(filename)
                pattern = table_name

            table_names.update(fnmatch.filter(metadata.tables.keys(), pattern))
    else:
        table_names = metadata.tables.keys()

    return list(table_names)

def _get_verbose_prints(verbose):
    """If `verbose` is true, returns three functions: one for printing a
    starting message, one for printing an interim status update, and one for
    printing a success or failure message when finished.

    If `verbose` is false, returns no-op functions.
    """

    if not verbose:
        # Return dummies
        def dummy(*args, **kwargs):
            pass

        return dummy, dummy, dummy

    ### Okay, verbose == True; print stuff

    def print_start(thing):
        # Truncate to 66 characters, leaving 10 characters for a success
        # or failure message
        truncated_thing = thing[:66]

        # Also, space-pad to keep the cursor in a known column
        num_spaces = 66 - len(truncated_thing)

        print("%s...%s" % (truncated_thing, ' ' * num_spaces), end='')
        sys.stdout.flush()

    if sys.stdout.isatty():
        # stdout is a terminal; backspace tricks are OK.
        backspaces = [0]
        def print_status(msg):
            # Overwrite any status text with spaces before printing
            sys.stdout.write('\b' * backspaces[0])
            sys.stdout.write(' ' * backspaces[0])
            sys.stdout.write('\b' * backspaces[0])
            sys.stdout.write(msg)
            sys.stdout.flush()
            backspaces[0] = len(msg)

        def print_done(msg='ok'):
            sys.stdout.write('\b' * backspaces[0])
            sys.stdout.write(' ' * backspaces[0])
            sys.stdout.write('\b' * backspaces[0])
            sys.stdout.write(msg + "\n")
            sys.stdout.flush()
            backspaces[0] = 0

    else:
        # stdout is a file (or something); don't bother with status at all
        def print_status(msg):
            pass

        def print_done(msg='ok'):
            print(msg)

    return print_start, print_status, print_done


def load(session, tables=[], directory=None, drop_tables=False, verbose=False):
    """Load data from CSV files into the given database session.

    Tables are created automatically.

    `session`
        SQLAlchemy session to use.

    `tables`
        List of tables to load.  If omitted, all tables are loaded.

    `directory`
        Directory the CSV files reside in.  Defaults to the `pksave` data
        directory.

    `drop_tables`
        If set to True, existing `pksave`-related tables will be dropped.

    `verbose`
        If set to True, status messages will be printed to stdout.
    """

    # First take care of verbosity
    print_start, print_status, print_done = _get_verbose_prints(verbose)

    if directory is None:
        directory = get_default_csv_dir()

    table_names = _get_table_names(metadata, tables)
    table_objs = [metadata.tables[name] for name in table_names]
    table_objs = sqlalchemy.sql.util.sort_tables(table_objs)

    engine = session.get_bind()

    # Drop all tables if requested
    if drop_tables:
        print_start('Dropping tables')
        for n, table in enumerate(reversed(table_objs)):
            table.drop(bind=engine, checkfirst=True)
            print_status('%s/%s' % (n, len(table_objs)))
        print_done()

    print_start('Creating tables')
    for n, table in enumerate(table_objs):
        try:
            table.create(bind=engine)

        # Exceptions for handling the error thrown when trying to load
        # the database with a table that already exists.
        except (
            sqlalchemy.exc.OperationalError,  # Exception used for SQLite
            sqlalchemy.exc.ProgrammingError,  # Exception used for PostgreSQL
            sqlalchemy.exc.InternalError      # Exception used for MySQL
            ) as error:

            if "already exists" in str(error.orig):
                print("\n\nERROR:  The table '{}' already exists in the database. "
                    "Did you mean to use 'pksave load -D'".format(table))
                sys.exit(1)

            # If it happens to be some other error but raised by the same
            # exception, then an unexpected error message is sent with
            # the error included
            else:
                print("\n\n UNEXPECTED ERROR: ", error)
                sys.exit(1)

        print_status('%s/%s' % (n, len(table_objs)))
    print_done()

    # Okay, run through the tables and actually load the data now
    for table_obj in table_objs:
        table_name = table_obj.name
        insert_stmt = table_obj.insert()

        print_start(table_name)

        csvpath = "%s/%s.csv" % (directory, table_name)
        try:
            csvfile = open(csvpath, 'r', encoding="utf8", newline='')
        except IOError:
            # File doesn't exist; don't load anything!
            print_done('missing?')
            continue

        with csvfile:
            reader = csv.reader(csvfile, lineterminator='\n')
            column_names = next(reader)

            new_rows = []
            def insert_and_commit():
                if not new_rows:
                    return
                session.execute(insert_stmt, new_rows)
                session.commit()
                new_rows[:] = []
                print_status(str(csvpos))

            csvpos = 0
            for csvs in reader:
                csvpos += 1
                row_data = {}

                for column_name, value in zip(column_names, csvs):
                    column = table_obj.c[column_name]
                    if column.nullable and value == '':
                        # Empty string in a nullable column really means NULL
                        value = None
                    elif isinstance(column.type, sqlalchemy.types.Boolean):
                        # Boolean values are stored as string values 0/1, but
                        # both of those evaluate as true; SQLA wants
                        # True/False
                        value = (value != '0')

                    row_data[column_name] = value

                new_rows.append(row_data)

                # Remembering some zillion rows in the session consumes a lot
                # of RAM.  Let's not do that.  Commit every 1000 rows
                if len(new_rows) >= 1000:
                    insert_and_commit()

            insert_and_commit()

        print_done()

    # SQLite check
    if engine.dialect.name == 'sqlite':
        session.execute(text("PRAGMA integrity_check"))


def dump(session, tables=[], directory=None, verbose=False):
    """Dumps the contents of a database to a set of CSV files.

    `session`
        SQLAlchemy session to use.

    `tables`
        List of tables to dump.  If omitted, all tables are dumped.

    `directory`
        Directory the CSV files should be put in.  Defaults to the `pksave`
        data directory.

    `verbose`
        If set to True, status messages will be printed to stdout.
    """

    # First take care of verbosity
    print_start, print_status, print_done = _get_verbose_prints(verbose)

    if not directory:
        directory = get_default_csv_dir()

    table_names = _get_table_names(metadata, tables)
    table_names.sort()

    for table_name in table_names:
        print_start(table_name)
        table = metadata.tables[table_name]

        filename = '%s/%s.csv' % (directory, table_name)
        columns = [col.name for col in table.columns]

        with open(filename, 'w', newline='', encoding="utf8") as csvfile:
            writer = csv.writer(csvfile, lineterminator='\n')
            writer.writerow(columns)

            primary_key = table.primary_key
            for row in session.query(table).order_by(*primary_key).all():
                csvs = []
                for col in columns:
                    # Convert Pythony values to something more universal
                    val = getattr(row, col)
                    if val is None:
                        val = ''
                    elif val is True:
                        val = '1'
                    elif val is False:
                        val = '0'
                    else:
                        val = str(val)

                    csvs.append(val)

                writer.writerow(csvs)

        print_done()

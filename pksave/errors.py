# encoding: utf8
"""Exceptions raised while reading or writing save data."""


class SaveDataError(Exception):
    """Base class for anything wrong with the layout of a save file."""


class SectionNotFound(SaveDataError):
    def __init__(self, section_id):
        super(SectionNotFound, self).__init__(
            'No section with id %r in the current save block' % (section_id,))
        self.section_id = section_id


class InvalidDataLength(SaveDataError):
    def __init__(self, expected, found):
        super(InvalidDataLength, self).__init__(
            'Expected %d bytes, found %d' % (expected, found))
        self.expected = expected
        self.found = found


class ChecksumMismatch(SaveDataError):
    """A stored checksum does not match the one computed from the data.

    Never raised while reading; only by explicit verification.
    """
    def __init__(self, expected, found, section_id=None):
        message = 'Checksum mismatch: computed 0x%04x, stored 0x%04x' % (
            expected, found)
        if section_id is not None:
            message += ' (section %d)' % section_id
        super(ChecksumMismatch, self).__init__(message)
        self.expected = expected
        self.found = found
        self.section_id = section_id


class UnknownSpecies(SaveDataError):
    def __init__(self, species_id):
        super(UnknownSpecies, self).__init__(
            'No Gen III species with id %r' % (species_id,))
        self.species_id = species_id

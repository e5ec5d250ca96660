"""
Antakshari Round Shuffler.

Song catalog and round shuffler for an Antakshari party game: the host walks
a fixed rotation of song sets, players get random draws, and a lock freezes
the host's round for everyone else.
"""

"""Access app package.

Physical access credentials (door codes, lock PINs) per property and the
rotation that hands the next one to every approved stay.
"""

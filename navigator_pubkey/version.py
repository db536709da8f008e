"""Navigator Pubkey Meta information.
   Navigator Pubkey shares role-scoped encryption keys between users
   through per-member public key envelopes.
"""
__title__ = 'navigator_pubkey'
__description__ = (
   'Navigator Pubkey shares role-scoped encryption keys between users '
   'through per-member public key envelopes.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-pubkey'

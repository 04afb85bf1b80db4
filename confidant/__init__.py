"""
Confidant shares GPG encrypted files between a group of collaborators.

Each collaborator exports their public key into a shared '.gpg-keys' directory
(usually committed to a git repository) and registers it in the keylist. Files
are encrypted for every key in the keylist, so anyone listed can decrypt them.

\b
    * '.gpg-keys/keylist' maps key IDs to names, one 'KEYID NAME' per line.
    * '.gpg-keys/NAME.pub' holds the armoured public key for NAME.
    * 'file.txt' is encrypted to 'file.txt.gpg'.

Share your public key and commit the key directory:

\b
    $ confidant share 0123456789ABCDEF alice
    $ git add .gpg-keys && git commit -m "Add alice's key"

Import and trust everyone else's keys:

\b
    $ confidant sync

Encrypt, decrypt and clean up plaintext:

\b
    $ confidant encrypt secrets.txt
    $ confidant decrypt secrets.txt.gpg
    $ confidant clean

Re-encrypt after a key has been added or removed:

\b
    $ confidant reencrypt secrets.txt.gpg
"""

__version__ = '1.0.0'

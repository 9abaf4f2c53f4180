"""Terminal driver: generate a key pair, read one message, encrypt and decrypt it."""

import argparse
import logging
import sys

from mhk.config import DEFAULT_MAX_BITS, DEFAULT_MAX_CHARS, get_max_bits, get_max_chars
from mhk.crypto.knapsack import decrypt_text, encrypt_text, generate_keypair


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mhk", description="Merkle-Hellman knapsack encryption demo.")
    p.add_argument("--max-chars", type=int, default=None,
                   help=f"Maximum message length in bytes (default MHK_MAX_CHARS or {DEFAULT_MAX_CHARS})")
    p.add_argument("--max-bits", type=int, default=None,
                   help=f"Bit width of the random key increments (default MHK_MAX_BITS or {DEFAULT_MAX_BITS})")
    p.add_argument("-m", "--message", default=None, help="Message to encrypt; prompts when omitted")
    p.add_argument("-v", "--verbose", action="store_true", help="Log key generation details")
    return p


def prompt_message(max_chars: int) -> str:
    """Ask until a non-empty message within the bound is entered. Raises EOFError on closed stdin."""
    while True:
        print("Enter a string and I will encrypt it as single large integer:")
        message = input()
        try:
            size = len(message.encode("utf-8"))
        except UnicodeEncodeError:
            print("\nYour message is not valid UTF-8 text! Please try again.\n")
            continue
        if size > max_chars:
            print(f"\nYour message should have at most {max_chars} bytes! Please try again.\n")
        elif size == 0:
            print("\nYour message should not be empty! Please try again.\n")
        else:
            return message


def main(argv=None) -> int:
    args = build_argparser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        max_chars = args.max_chars if args.max_chars is not None else get_max_chars()
        max_bits = args.max_bits if args.max_bits is not None else get_max_bits()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if max_chars <= 0 or max_bits <= 0:
        print("--max-chars and --max-bits must be positive", file=sys.stderr)
        return 2

    keypair = generate_keypair(max_chars=max_chars, max_bits=max_bits)
    print("Public and private keys have been generated.\n")

    if args.message is not None:
        message = args.message
    else:
        try:
            message = prompt_message(max_chars)
        except EOFError:
            print("\nError: no message entered (end of input)", file=sys.stderr)
            return 1
    try:
        encrypted = encrypt_text(keypair.public, message)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\nClear text:")
    print(message)
    print(f"\nNumber of clear text bytes = {len(message.encode('utf-8'))}")
    print(f'\n"{message}" is encrypted as:')
    print(encrypted)
    print("\nResult of decryption:")
    print(decrypt_text(keypair.private, encrypted))
    return 0


if __name__ == "__main__":
    sys.exit(main())

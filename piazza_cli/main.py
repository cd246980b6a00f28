import argparse
import logging
import os
import re
import sys

from tqdm import tqdm

from piazza_cli import config
from piazza_cli.client import PiazzaClient
from piazza_cli.config import PIAZZA_SCHEME
from piazza_cli.errors import PiazzaError
from piazza_cli.resolver import HTMLWrapper, extract_links

ROOT_ADDRESS = f"{PIAZZA_SCHEME}://"


# --- UTILS ---

def sanitize_filename(name):
    """Clean strings to be safe for filenames."""
    cleaned = re.sub(r'[<>:"/\\|?*]', '', name)
    return cleaned.strip()[:100]


def write_html(path, html):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(html)


def post_addresses(class_id, html):
    """Thread addresses listed on a class page, in page order."""
    prefix = f"{ROOT_ADDRESS}{class_id}/"
    seen = []
    for link in extract_links(html):
        if link.startswith(prefix) and link not in seen:
            seen.append(link)
    return seen


def login(args, cfg):
    username, password = config.resolve_credentials(args.username, args.password, cfg)
    if not username or not password:
        print(f"[!] No credentials. Use --username/--password, "
              f"{config.USER_ENV}/{config.PASS_ENV} or {config.CONFIG_YAML}.", file=sys.stderr)
        sys.exit(1)
    print(f"[*] Logging in as {username}...", file=sys.stderr)
    client = PiazzaClient.login_with(username, password)
    print("[+] Logged in", file=sys.stderr)
    return client


# --- ACTIONS ---

def cmd_get(client, address):
    """Print the HTML for one piazza:// address."""
    wrapper = HTMLWrapper(client)
    if address.startswith(ROOT_ADDRESS) and address.rstrip("/") != ROOT_ADDRESS.rstrip("/"):
        # class and post addresses need the class list first
        wrapper.get(ROOT_ADDRESS)
    sys.stdout.write(wrapper.get(address))


def cmd_pull(client, output):
    """Resolve every class and thread and save the pages under ``output``."""
    wrapper = HTMLWrapper(client)
    print("[*] Discovering classes...")
    write_html(os.path.join(output, "index.html"), wrapper.get(ROOT_ADDRESS))

    for class_id in sorted(wrapper.networks):
        network = wrapper.networks[class_id]
        print(f"\n=== Syncing: {network.name or class_id} ===")
        class_dir = os.path.join(output, sanitize_filename(class_id))
        try:
            html = wrapper.get(f"{ROOT_ADDRESS}{class_id}")
        except PiazzaError as e:
            print(f"    [!] Error processing class {class_id}: {e}")
            continue
        write_html(os.path.join(class_dir, "index.html"), html)

        for address in tqdm(post_addresses(class_id, html), desc=class_id, unit="post"):
            post_id = address.rsplit("/", 1)[1]
            try:
                page = wrapper.get(address)
            except PiazzaError as e:
                tqdm.write(f"    [!] Error fetching {address}: {e}")
                continue
            write_html(os.path.join(class_dir, f"{sanitize_filename(post_id)}.html"), page)
    print(f"\n[+] Saved to {output}")


def cmd_optout(client):
    """Turn off new-post emails on every class."""
    changed = client.opt_out_of_emails()
    for class_id in changed:
        print(f"    [UPDATE] {class_id}: no-emails")
    print(f"[+] Opted out of emails on {len(changed)} classes")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Piazza client")
    parser.add_argument('command', choices=['get', 'pull', 'optout'],
                        help="get: print a piazza:// address as HTML, "
                             "pull: save every class and thread, optout: disable emails")
    parser.add_argument('address', nargs='?', default=ROOT_ADDRESS,
                        help="piazza://, piazza://<class> or piazza://<class>/<post> (get only)")
    parser.add_argument('--username', help="Piazza username (email)")
    parser.add_argument('--password', help="Piazza password")
    parser.add_argument('--config', default=config.CONFIG_YAML, help="YAML config file")
    parser.add_argument('--output', help="Directory for pull (default: ./piazza)")
    parser.add_argument('-v', '--verbose', action='store_true', help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Paths are relative to where the user runs the command
    config_path = os.path.join(os.getcwd(), args.config)
    try:
        cfg = config.load_config(config_path)
    except (OSError, ValueError) as e:
        print(f"[!] Could not read {config_path}: {e}")
        sys.exit(1)
    output = args.output or cfg.get('output') or os.path.join(os.getcwd(), "piazza")

    try:
        client = login(args, cfg)
        if args.command == 'get':
            cmd_get(client, args.address)
        elif args.command == 'pull':
            cmd_pull(client, output)
        elif args.command == 'optout':
            cmd_optout(client)
    except PiazzaError as e:
        print(f"[!] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

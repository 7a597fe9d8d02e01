"""Quick manual check for a running NetLens web API (python webapp.py)."""
import sys

import requests

BASE_URL = 'http://localhost:5000'


def main(path='datasets/cisco/access_switch.conf', vendor='cisco'):
    resp = requests.get(f'{BASE_URL}/api/vendors', timeout=10)
    print("Vendors:", resp.status_code, resp.json())

    with open(path, 'rb') as f:
        resp = requests.post(f'{BASE_URL}/api/analyze',
            files={'config_file': (path.rsplit('/', 1)[-1], f)},
            data={'vendor': vendor},
            timeout=30,
        )

    print("Status:", resp.status_code)
    print("Response:", resp.text[:2000])


if __name__ == '__main__':
    main(*sys.argv[1:])

import argparse
import json
from urllib import request


def post_json(url: str, payload: dict) -> tuple[int, dict]:
    body = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=body, headers={"Content-Type": "application/json"}, method="POST")
    with request.urlopen(req, timeout=10) as resp:
        data = resp.read().decode("utf-8")
        return resp.status, json.loads(data)


def get_json(url: str) -> tuple[int, dict]:
    req = request.Request(url, method="GET")
    with request.urlopen(req, timeout=10) as resp:
        data = resp.read().decode("utf-8")
        return resp.status, json.loads(data)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a hive with N boxes at their suggested addresses")
    parser.add_argument("--base-url", default="http://127.0.0.1:3000", help="API base URL")
    parser.add_argument("--name", default="Hive", help="Hive name")
    parser.add_argument("--boxes", type=int, default=10, help="Number of boxes")
    parser.add_argument("--admin", default=None, help="Badge id to register as admin")
    args = parser.parse_args()

    code, hive = post_json(f"{args.base_url}/api/hives", {"name": args.name})
    print(f"POST /api/hives -> {code}: {hive}")

    for number in range(1, args.boxes + 1):
        code, box = post_json(f"{args.base_url}/api/boxes", {"hiveId": hive["id"], "boxNumber": number})
        print(f"POST /api/boxes #{number} -> {code}: {box['ipAddress']}")

    if args.admin:
        code, _ = post_json(f"{args.base_url}/api/admins", {"id": args.admin, "name": "Admin"})
        print(f"POST /api/admins -> {code}")

    code, stats = get_json(f"{args.base_url}/api/stats")
    print(f"GET /api/stats -> {code}")
    print(json.dumps({k: stats[k] for k in ("totalBoxes", "freeBoxes", "occupiedBoxes")}, indent=2))


if __name__ == "__main__":
    main()

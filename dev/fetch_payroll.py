#!/usr/bin/env python3
import json
import os
import argparse

import requests


def main():
    parser = argparse.ArgumentParser(description="Fetch a monthly payroll run and save it to dev/result.json")
    parser.add_argument("month", help="Target month, YYYY-MM")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--team-id", help="Restrict to one team and its sub-teams")
    parser.add_argument("--pay-model", default="monthly")
    parser.add_argument("--export", choices=["csv", "json"], help="Fetch the bank transfer sheet instead")
    args = parser.parse_args()

    params = {"month": args.month, "pay_model": args.pay_model}
    if args.team_id:
        params["team_id"] = args.team_id
    if args.export:
        params["format"] = args.export
        url = f"{args.base_url}/api/payroll/export"
    else:
        url = f"{args.base_url}/api/payroll/monthly"

    resp = requests.get(url, params=params)
    resp.raise_for_status()

    os.makedirs("dev", exist_ok=True)
    if args.export == "csv":
        path = os.path.join("dev", f"transfer_{args.month}.csv")
        with open(path, "w", encoding="utf-8-sig") as f:
            f.write(resp.text)
    else:
        path = os.path.join("dev", "result.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(resp.json(), f, ensure_ascii=False, indent=2)
    print(f"{url} saved to {path}")


if __name__ == "__main__":
    main()

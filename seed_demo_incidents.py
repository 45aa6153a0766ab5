"""
Seed demo users and incident reports through the SafeRoute API.

Run with the API already running (python run_api.py). Optionally set SAFEROUTE_API_URL in env.
One demo contributor files seven reports (enough for the Active tier); the rest are anonymous.
Usage: python seed_demo_incidents.py
"""

import os
import time

import httpx

SAFEROUTE_API_URL = (os.environ.get("SAFEROUTE_API_URL") or "http://localhost:8000").rstrip("/")

DEMO_USER = {"name": "Alex Rivera", "email": "alex.rivera@example.com"}

# Demo reports around downtown Chicago; "mine" reports are filed by the demo user
DEMO_REPORTS = [
    {"title": "Phone snatched on the platform", "description": "Someone grabbed a phone and ran up the stairs.", "category": "theft", "severity": "medium", "location": "Clark/Lake station", "latitude": 41.8857, "longitude": -87.6309, "mine": True},
    {"title": "Fake ticket sellers", "description": "Group selling counterfeit tickets outside the venue.", "category": "scam", "severity": "low", "location": "Navy Pier entrance", "latitude": 41.8917, "longitude": -87.6086, "mine": True},
    {"title": "Poorly lit underpass", "description": "Several lights out, people loitering late at night.", "category": "unsafe_area", "severity": "medium", "location": "Lower Wacker Dr", "latitude": 41.8868, "longitude": -87.6253, "mine": True},
    {"title": "Car windows smashed", "description": "Three parked cars with broken windows on the block.", "category": "vandalism", "severity": "low", "location": "W Hubbard St", "latitude": 41.8899, "longitude": -87.6321, "mine": True},
    {"title": "Aggressive panhandling", "description": "Person following tourists and shouting.", "category": "harassment", "severity": "medium", "location": "Michigan Ave & Ohio St", "latitude": 41.8925, "longitude": -87.6244, "mine": True},
    {"title": "Bag theft at cafe", "description": "Bag taken from the back of a chair.", "category": "theft", "severity": "low", "location": "State St cafe", "latitude": 41.8826, "longitude": -87.6278, "mine": True},
    {"title": "Street fight", "description": "Fight broke out near the bar, one person injured.", "category": "assault", "severity": "high", "location": "Division St", "latitude": 41.9036, "longitude": -87.6315, "mine": True},
    {"title": "Card skimmer on ATM", "description": "Loose card reader attachment on the ATM.", "category": "scam", "severity": "medium", "location": "Millennium Park ATM", "latitude": 41.8826, "longitude": -87.6226},
    {"title": "Graffiti on monument", "description": "Fresh graffiti on the base of the statue.", "category": "vandalism", "severity": "low", "location": "Grant Park", "latitude": 41.8756, "longitude": -87.6244},
    {"title": "Suspicious package", "description": "Unattended bag reported to station staff.", "category": "other", "severity": "high", "location": "Union Station", "latitude": 41.8786, "longitude": -87.6403},
]


def main():
    print(f"Seeding demo data via {SAFEROUTE_API_URL}")
    client = httpx.Client(timeout=30.0)
    try:
        r = client.post(f"{SAFEROUTE_API_URL}/users", json=DEMO_USER)
        r.raise_for_status()
        user_id = r.json()["user_id"]
        print(f"  demo user user_id={user_id}")

        for i, report in enumerate(DEMO_REPORTS):
            payload = {k: v for k, v in report.items() if k != "mine"}
            if report.get("mine"):
                payload["reporter_id"] = user_id
            r = client.post(f"{SAFEROUTE_API_URL}/incidents", json=payload)
            if r.is_success:
                data = r.json()
                print(f"  [{i+1}/{len(DEMO_REPORTS)}] incident_id={data.get('incident_id')} severity={data.get('severity')}")
            else:
                print(f"  [{i+1}/{len(DEMO_REPORTS)}] FAILED {r.status_code} {r.text[:200]}")
            time.sleep(0.3)

        mode = client.get(f"{SAFEROUTE_API_URL}/risk-mode").json()
        print(f"Done. Risk mode is now {mode.get('mode')} ({mode.get('assertions')} assertion(s)).")
        print(f"Profile: {SAFEROUTE_API_URL}/users/{user_id}/profile")
    finally:
        client.close()


if __name__ == "__main__":
    main()

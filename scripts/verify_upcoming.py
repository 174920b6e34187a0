import httpx
import time
import sys
import subprocess
import os

BASE = "http://127.0.0.1:8000"
URL = f"{BASE}/api/v1/asteroids"

def check_backend():
    try:
        r = httpx.get(f"{BASE}/health", timeout=2)
        return r.status_code == 200
    except httpx.HTTPError:
        return False

def start_backend():
    print("Starting temporary backend...")
    p = subprocess.Popen([sys.executable, "-m", "uvicorn", "neowatch.main:app", "--host", "0.0.0.0", "--port", "8000"],
                         cwd=os.path.join(os.getcwd(), "backend"),
                         env={**os.environ, "CACHE_BACKEND": os.getenv("CACHE_BACKEND", "memory")},
                         stdout=subprocess.PIPE,
                         stderr=subprocess.PIPE)
    for i in range(20):
        if check_backend():
            print("Backend started.")
            return p
        time.sleep(1)
    print("Backend failed to start.")
    return None

def verify_upcoming():
    # 1. Ranked listing
    print("Requesting upcoming approaches (window_days=1, rank_size=12)...")
    start_time = time.time()
    r = httpx.get(f"{URL}/upcoming?window_days=1&rank_size=12", timeout=120)
    duration = time.time() - start_time
    if r.status_code != 200:
        print(f"[FAIL] Listing failed: {r.status_code} {r.text}")
        return

    data = r.json()
    print(f"[PASS] {len(data['items'])} objects in {duration:.2f}s (empty={data['empty']})")
    for item in data["items"][:5]:
        tag = " (estimated)" if item["estimated"] else ""
        print(f"  {item['name']:<28} {item['energy_mt']:>12.3f} Mt  r={item['radius_km']:.3f} km{tag}")

    # 2. Second call must be served from cache
    start_time = time.time()
    r = httpx.get(f"{URL}/upcoming?window_days=1&rank_size=12", timeout=120)
    print(f"[{'PASS' if r.status_code == 200 else 'FAIL'}] Cached listing in {time.time() - start_time:.2f}s")

    # 3. Detail lookup
    if data["items"]:
        neo_id = data["items"][0]["id"]
        r = httpx.get(f"{URL}/{neo_id}", timeout=60)
        if r.status_code == 200:
            period = (r.json().get("orbital_data") or {}).get("orbital_period_days")
            print(f"[PASS] Detail for {neo_id}: orbital period {period} days")
        else:
            print(f"[FAIL] Detail lookup failed: {r.status_code}")

    # 4. Budget
    r = httpx.get(f"{BASE}/api/v1/budget/", timeout=10)
    if r.status_code == 200:
        budget = r.json()
        print(f"[PASS] Budget remaining: total={budget['total']['remaining']} hourly={budget['hourly']['remaining']}")

if __name__ == "__main__":
    proc = None
    if not check_backend():
        proc = start_backend()
        if not proc:
            sys.exit(1)

    try:
        verify_upcoming()
    finally:
        if proc:
            print("Stopping temporary backend...")
            proc.terminate()

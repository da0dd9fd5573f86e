import asyncio
import time
import subprocess
import httpx
import sys
import os
import signal
from datetime import datetime

from backend.seed_tracking_data import seed_tracking_data, token_for

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"

def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False

def start_server(echo=False):
    env = {**os.environ, "DB_ECHO": "True"} if echo else None
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env
    )

def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()

def run_verification():
    users = asyncio.run(seed_tracking_data())
    driver = users["driver"]
    headers = {"Authorization": f"Bearer {token_for(driver)}"}
    marker = round(1.0 + (time.time() % 1000) / 1000, 4)

    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server(echo=True)
    
    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Submit a location sample
        print("\n--- [Step 2] Submitting Location (Persistence Test) ---")
        payload = {
            "latitude": 25.2048,
            "longitude": 55.2708,
            "accuracy": 5.0,
            "speed": marker,
            "timestamp": datetime.utcnow().isoformat() + "Z"
        }
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/driver/location", json=payload, headers=headers)
        if resp.status_code == 200:
            print(f"✅ Location stored: {resp.json()['location_id']}")
        else:
            print(f"❌ Submission Failed: {resp.status_code} {resp.text}")
            raise Exception("Submission failed")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)
    
    time.sleep(2) # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()
    
    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. Read back the sample from history
        print("\n--- [Step 5] Reading Location History ---")
        resp = httpx.get(
            f"{BASE_URL}{API_PREFIX}/drivers/{driver.id}/location/history",
            params={"limit": 20},
            headers=headers
        )
        if resp.status_code != 200:
            print(f"❌ History request failed: {resp.status_code} {resp.text}")
            sys.exit(1)
        
        speeds = [loc.get("speed") for loc in resp.json()["history"]]
        if marker in speeds:
            print("✅ PERSISTENCE VERIFIED: Sample survived restart.")
        else:
            print(f"❌ PERSISTENCE FAILED: Sample with speed {marker} not found.")
            sys.exit(1)

    finally:
        print("\n--- [Step 6] Cleanup ---")
        stop_server(proc2)

if __name__ == "__main__":
    run_verification()

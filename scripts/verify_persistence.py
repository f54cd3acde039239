import time
import subprocess
import httpx
import sys
import os
import signal
import tempfile

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/api"


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}{API_PREFIX}/health"
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


def start_server(env):
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "trackfy.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env,
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def run_verification(backend="file"):
    workdir = tempfile.mkdtemp(prefix="trackfy-")
    env = {
        **os.environ,
        "TRACKFY_STORE_BACKEND": backend,
        "TRACKFY_DATA_FILE": os.path.join(workdir, "tracking-codes.json"),
        "TRACKFY_DATABASE_URL": f"sqlite+aiosqlite:///{os.path.join(workdir, 'trackfy.db')}",
        "TRACKFY_CLEANUP_ENABLED": "false",
    }

    # 1. Start Server (First Run)
    print(f"\n--- [Step 1] Starting Server ({backend} store) ---")
    proc = start_server(env)

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Create a batch
        print("\n--- [Step 2] Creating Codes ---")
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/codes", json={"cities": ["São Paulo", "Recife"]})
        if resp.status_code != 200:
            print(f"❌ Creation Failed: {resp.status_code} {resp.text}")
            raise Exception("Creation failed")
        generation = resp.json()["generation"]
        codes = sorted(c["code"] for c in generation["codes"])
        print(f"✅ Created {codes}")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server(env)

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        print("\n--- [Step 5] Reading Codes (Post-Restart) ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/codes")
        found = sorted(c["code"] for c in resp.json()["codes"])
        if found == codes:
            print("✅ Codes Persisted!")
        else:
            print(f"❌ Expected {codes}, got {found}")
            raise Exception("Codes lost after restart")

        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/generations")
        if [g["id"] for g in resp.json()["generations"]] == [generation["id"]]:
            print("✅ Generation Persisted!")
        else:
            raise Exception("Generation lost after restart")

    finally:
        print("\n--- [Step 6] Stopping Server ---")
        stop_server(proc2)


if __name__ == "__main__":
    run_verification(sys.argv[1] if len(sys.argv) > 1 else "file")

import urllib.request
import urllib.error
import json
import time

BASE = "http://localhost:8000/api/v1"

OWNER = "0x00000000000000000000000000000000000a11ce"
TRADER = "0x1111111111111111111111111111111111111111"
UNIT = 1_000_000


def post(path, body):
    data = json.dumps(body).encode()
    req = urllib.request.Request(
        f"{BASE}{path}",
        data=data,
        headers={"Content-Type": "application/json"}
    )
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())


def get(path, params=None):
    url = f"{BASE}{path}"
    if params:
        url += "?" + "&".join(f"{k}={v}" for k, v in params.items())
    try:
        with urllib.request.urlopen(url) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())


def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)


def label(name):
    print(f"\n--- {name} ---")


def out(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ── Funding ────────────────────────────────────────────────────
section("FAUCET")

label("Fund owner")
out(post("/amm/faucet", {"sender": OWNER, "to": OWNER, "amount": 100_000 * UNIT}))

label("Fund trader")
out(post("/amm/faucet", {"sender": OWNER, "to": TRADER, "amount": 1_000 * UNIT}))

label("Trader balance")
out(get(f"/amm/accounts/{TRADER}"))

# ── Market ─────────────────────────────────────────────────────
section("CREATE MARKET")

r = post("/amm/markets", {
    "sender": OWNER,
    "question": "Will the smoke test pass?",
    "category": "meta",
    "resolution_date": int(time.time()) + 86_400,
    "initial_liquidity": 1_000 * UNIT,
    "fee_bps": 200,
})
out(r)
MARKET = (r.get("data") or {}).get("result", {}).get("address", "")

# ── Trading ────────────────────────────────────────────────────
section("TRADING")

label("Buy YES 100")
r = post(f"/amm/markets/{MARKET}/buy", {"sender": TRADER, "side": "YES", "amount": 100 * UNIT})
out(r)
SHARES = (r.get("data") or {}).get("result", {}).get("shares", 0)

label("Sell half")
out(post(f"/amm/markets/{MARKET}/sell", {"sender": TRADER, "side": "YES", "shares": SHARES // 2}))

label("Buy with zero amount (expect error)")
out(post(f"/amm/markets/{MARKET}/buy", {"sender": TRADER, "side": "NO", "amount": 0}))

# ── Indexer ────────────────────────────────────────────────────
section("WAIT FOR INDEXER")
print("Sleeping 20s for the event scan to catch up...")
time.sleep(20)

label("Markets")
out(get("/markets", {"category": "all"}))

label("Market detail")
out(get(f"/markets/{MARKET}"))

label("Market trades")
out(get(f"/markets/{MARKET}/trades"))

label("Search")
out(get("/markets/search", {"q": "smoke"}))

label("Portfolio")
out(get(f"/portfolio/{TRADER}"))

label("History")
out(get(f"/portfolio/{TRADER}/history"))

# ── Resolution ─────────────────────────────────────────────────
section("RESOLUTION")

label("Resolve YES")
out(post(f"/amm/markets/{MARKET}/resolve", {"sender": OWNER, "outcome": "YES"}))

time.sleep(20)

label("Claimable")
out(get(f"/portfolio/{TRADER}/claimable"))

label("Claim")
out(post(f"/amm/markets/{MARKET}/claim", {"sender": TRADER}))

label("Claim again (expect error)")
out(post(f"/amm/markets/{MARKET}/claim", {"sender": TRADER}))

print("\n\nDone.")

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock FinClub Server", version="1.0.0")
DATA_DIR = Path(os.environ.get("FINCLUB_STUB_DIR", "/data/finclub_stub"))
TOKEN = "mock-token"

@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/api/WB/authentication/sign-in/")
async def sign_in(request: Request, mode: str = "ok"):
    payload = await request.json()
    if mode == "fail":
        return JSONResponse(content=None, status_code=500)
    if not payload.get("email") or not payload.get("password"):
        return JSONResponse(content={"status": 401, "message": "invalid credentials"}, status_code=401)
    user = {"ur_id": 1, "ur_email": payload["email"], "ur_type": payload.get("type_of", "I")}
    return {"status": 200, "data": {"user": user, "token": TOKEN}}

@app.get("/api/WB/lenderaccount/overview/investor/getEscrowAccountOverview")
def escrow_account_overview(authorization: str = Header(default="")):
    if authorization != f"Bearer {TOKEN}":
        return JSONResponse(content={"status": 401, "message": "invalid token"}, status_code=401)
    file = DATA_DIR / "escrow_account_overview.json"
    if file.exists():
        return JSONResponse(content=json.loads(file.read_text()))
    return {"status": 200, "data": {"total_credit": 150000.0, "total_debit": 42500.5}}

"""Bank statement import — CSV template round trip, duplicate skipping, OFX detection by extension."""

from app.core.statement_parsing import CSV_TEMPLATE

OFX = """OFXHEADER:100
<OFX><BANKMSGSRSV1><STMTTRNRS><STMTRS><BANKTRANLIST>
<STMTTRN><TRNTYPE>CREDIT<DTPOSTED>20240301120000<TRNAMT>750.00<FITID>F-1<NAME>Retainer
</STMTTRN>
</BANKTRANLIST></STMTRS></STMTTRNRS></BANKMSGSRSV1></OFX>
"""


async def _import(client, headers, account_id, content, filename="statement.csv", **form):
    return await client.post(
        "/api/v1/bank-transactions/import",
        data={"account_id": account_id, **form},
        files={"file": (filename, content.encode(), "text/plain")},
        headers=headers,
    )


async def test_template_download(client, firm_a):
    response = await client.get("/api/v1/bank-transactions/import/template", headers=firm_a)
    assert response.status_code == 200
    assert response.text.startswith("Date,Description,Amount,Type")


async def test_csv_import_then_duplicates(client, firm_a, bank_account):
    account = await bank_account()
    first = await _import(client, firm_a, account["id"], CSV_TEMPLATE)
    assert first.status_code == 200, first.text
    assert first.json()["data"]["imported"] == 2

    balance = await client.get(f"/api/v1/bank-accounts/{account['id']}", headers=firm_a)
    assert balance.json()["data"]["current_balance"] == 5650.0

    second = await _import(client, firm_a, account["id"], CSV_TEMPLATE)
    data = second.json()["data"]
    assert data["imported"] == 0
    assert data["duplicates"] == 2


async def test_bad_rows_reported(client, firm_a, bank_account):
    account = await bank_account()
    content = "Date,Description,Amount\nnot-a-date,Fee,10\n2024-01-02,Fee,20\n"
    data = (await _import(client, firm_a, account["id"], content)).json()["data"]
    assert data["imported"] == 1
    assert data["errors"][0]["row"] == 1


async def test_ofx_detected_from_extension(client, firm_a, bank_account):
    account = await bank_account()
    response = await _import(client, firm_a, account["id"], OFX, filename="march.ofx")
    assert response.json()["data"]["imported"] == 1


async def test_empty_file_and_unknown_format(client, firm_a, bank_account):
    account = await bank_account()
    empty = await _import(client, firm_a, account["id"], "")
    assert empty.status_code == 400
    unknown = await _import(client, firm_a, account["id"], CSV_TEMPLATE, format="qif")
    assert unknown.status_code == 400


async def test_other_tenant_account(client, firm_b, bank_account):
    account = await bank_account()
    response = await _import(client, firm_b, account["id"], CSV_TEMPLATE)
    assert response.status_code == 404

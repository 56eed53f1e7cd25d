"""
Test end-to-end delle API v1 tramite httpx + ASGITransport.

Ogni test usa il database in memoria della fixture `db`.
"""

from decimal import Decimal

import pytest


async def create_client(api, name="Acme", rate="100.00"):
    response = await api.post(
        "/api/v1/clients/",
        json={"name": name, "email": "billing@acme.com", "hourly_rate": rate},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_entry(api, client_id, start="2026-03-02T09:00:00Z", end="2026-03-02T11:00:00Z"):
    response = await api.post(
        "/api/v1/entries/",
        json={
            "client_id": client_id,
            "description": "Sviluppo",
            "start_time": start,
            "end_time": end,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


# ============================================================
# Test Sistema
# ============================================================


class TestSystem:
    """Test per gli endpoint di sistema e il formato errori."""

    async def test_health(self, api):
        """Test health check."""
        response = await api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_error_shape(self, api):
        """Test risposta errore: detail, error_code ed extra."""
        response = await api.get("/api/v1/clients/999")
        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "CLIENT_NOT_FOUND"
        assert "999" in body["detail"]
        assert "extra" in body


# ============================================================
# Test Clienti
# ============================================================


class TestClientsApi:
    """Test per gli endpoint clienti."""

    async def test_crud_flow(self, api):
        """Test creazione, modifica, archiviazione."""
        client = await create_client(api)
        assert client["name"] == "Acme"
        assert Decimal(client["hourly_rate"]) == Decimal("100")

        response = await api.patch(
            f"/api/v1/clients/{client['id']}", json={"hourly_rate": "120.00"}
        )
        assert response.status_code == 200
        assert Decimal(response.json()["hourly_rate"]) == Decimal("120")

        response = await api.post(f"/api/v1/clients/{client['id']}/archive")
        assert response.json()["is_archived"] is True
        assert (await api.get("/api/v1/clients/")).json()["total"] == 0
        listed = await api.get("/api/v1/clients/", params={"include_archived": True})
        assert listed.json()["total"] == 1

    async def test_duplicate_name(self, api):
        """Test nome cliente duplicato."""
        await create_client(api)
        response = await api.post("/api/v1/clients/", json={"name": "Acme", "hourly_rate": "50"})
        assert response.status_code == 409
        assert response.json()["extra"] == {"field": "name"}

    async def test_negative_rate_rejected(self, api):
        """Test tariffa negativa rifiutata dalla validazione."""
        response = await api.post("/api/v1/clients/", json={"name": "Neg", "hourly_rate": "-1"})
        assert response.status_code == 422


# ============================================================
# Test Voci
# ============================================================


class TestEntriesApi:
    """Test per gli endpoint delle voci."""

    async def test_rate_defaults_to_client(self, api):
        """Test tariffa catturata dal cliente e durata calcolata."""
        client = await create_client(api, rate="80.00")
        entry = await create_entry(api, client["id"])

        assert Decimal(entry["hourly_rate"]) == Decimal("80")
        assert entry["duration_seconds"] == 7200
        assert entry["is_locked"] is False

    async def test_update_requires_reason(self, api):
        """Test modifica senza motivo."""
        client = await create_client(api)
        entry = await create_entry(api, client["id"])
        response = await api.patch(
            f"/api/v1/entries/{entry['id']}", json={"description": "Altro"}
        )
        assert response.status_code == 422

    async def test_update_and_history(self, api):
        """Test modifica con storico."""
        client = await create_client(api)
        entry = await create_entry(api, client["id"])

        response = await api.patch(
            f"/api/v1/entries/{entry['id']}",
            json={"description": "Analisi", "reason": "refuso"},
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Analisi"

        history = (await api.get(f"/api/v1/entries/{entry['id']}/history")).json()
        assert [(h["field_name"], h["new_value"], h["change_reason"]) for h in history] == [
            ("description", "Analisi", "refuso")
        ]

    async def test_delete_with_reason(self, api):
        """Test eliminazione logica con motivo nel corpo."""
        client = await create_client(api)
        entry = await create_entry(api, client["id"])

        response = await api.request(
            "DELETE", f"/api/v1/entries/{entry['id']}", json={"reason": "duplicata"}
        )
        assert response.status_code == 204
        assert (await api.get("/api/v1/entries/")).json()["total"] == 0


# ============================================================
# Test Timer
# ============================================================


class TestTimerApi:
    """Test per gli endpoint del timer."""

    async def test_timer_flow(self, api):
        """Test avvio, pausa, ripresa, arresto."""
        client = await create_client(api)

        assert (await api.get("/api/v1/timer/")).json()["state"] == "idle"

        response = await api.post("/api/v1/timer/start", json={"client_id": client["id"]})
        assert response.status_code == 201
        assert response.json()["state"] == "running"

        response = await api.post("/api/v1/timer/start", json={"client_id": client["id"]})
        assert response.status_code == 409
        assert response.json()["error_code"] == "TIMER_ALREADY_RUNNING"

        assert (await api.post("/api/v1/timer/pause")).json()["state"] == "paused"
        assert (await api.post("/api/v1/timer/resume")).json()["state"] == "running"

        response = await api.post("/api/v1/timer/stop")
        assert response.status_code == 200
        assert response.json()["client_id"] == client["id"]
        assert (await api.get("/api/v1/timer/")).json()["state"] == "idle"

    async def test_stop_idle(self, api):
        """Test arresto senza timer."""
        response = await api.post("/api/v1/timer/stop")
        assert response.status_code == 409
        assert response.json()["error_code"] == "NO_ACTIVE_TIMER"


# ============================================================
# Test Fatture
# ============================================================


class TestInvoicesApi:
    """Test per il ciclo di vita delle fatture via API."""

    async def _draft(self, api, client_id, **extra):
        payload = {
            "client_id": client_id,
            "period_start": "2026-03-01",
            "period_end": "2026-03-31",
            **extra,
        }
        response = await api.post("/api/v1/invoices/", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    async def test_full_lifecycle(self, api):
        """Test bozza, finalizzazione, voce bloccata, invio, pagamento."""
        client = await create_client(api)
        entry = await create_entry(api, client["id"])

        invoice = await self._draft(api, client["id"], tax_rate="0.10")
        assert invoice["status"] == "draft"
        assert [item["entry_id"] for item in invoice["line_items"]] == [entry["id"]]
        assert invoice["line_items"][0]["date"] == "2026-03-02"
        assert Decimal(invoice["subtotal"]) == Decimal("200")
        assert Decimal(invoice["total"]) == Decimal("220")

        response = await api.post(
            f"/api/v1/invoices/{invoice['id']}/finalize",
            json={"due_days": 15, "export": False},
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "finalized"
        assert response.json()["due_date"] is not None

        response = await api.patch(
            f"/api/v1/entries/{entry['id']}",
            json={"description": "Dopo", "reason": "prova"},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "ENTRY_LOCKED"

        response = await api.put(f"/api/v1/invoices/{invoice['id']}/totals", json={"tax_rate": "0.22"})
        assert response.status_code == 409

        assert (await api.post(f"/api/v1/invoices/{invoice['id']}/send")).json()["status"] == "sent"
        response = await api.post(
            f"/api/v1/invoices/{invoice['id']}/pay", json={"paid_date": "2026-04-10"}
        )
        assert response.json()["status"] == "paid"
        assert response.json()["paid_date"] == "2026-04-10"

    async def test_only_unbilled_in_period(self, api):
        """Test bozza automatica: solo voci del periodo."""
        client = await create_client(api)
        march = await create_entry(api, client["id"])
        await create_entry(api, client["id"], start="2026-04-02T09:00:00Z", end="2026-04-02T10:00:00Z")

        invoice = await self._draft(api, client["id"])
        assert [item["entry_id"] for item in invoice["line_items"]] == [march["id"]]

    async def test_export_and_delete(self, api):
        """Test export testuale ed eliminazione con sblocco."""
        client = await create_client(api)
        entry = await create_entry(api, client["id"])
        invoice = await self._draft(api, client["id"])
        await api.post(f"/api/v1/invoices/{invoice['id']}/finalize", json={"export": False})

        response = await api.get(f"/api/v1/invoices/{invoice['id']}/export")
        assert response.status_code == 200
        body = response.json()
        assert body["invoice_number"] == invoice["invoice_number"]
        assert "TOTALE" in body["content"]

        response = await api.delete(f"/api/v1/invoices/{invoice['id']}")
        assert response.status_code == 204
        entry = (await api.get(f"/api/v1/entries/{entry['id']}")).json()
        assert entry["is_locked"] is False

    async def test_send_draft_rejected(self, api):
        """Test invio di una bozza."""
        client = await create_client(api)
        invoice = await self._draft(api, client["id"])
        response = await api.post(f"/api/v1/invoices/{invoice['id']}/send")
        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    @pytest.mark.parametrize("tax_rate", ["-0.1", "1.5"])
    async def test_invalid_tax_rate(self, api, tax_rate):
        """Test aliquota fuori intervallo."""
        client = await create_client(api)
        response = await api.post(
            "/api/v1/invoices/",
            json={
                "client_id": client["id"],
                "period_start": "2026-03-01",
                "period_end": "2026-03-31",
                "tax_rate": tax_rate,
            },
        )
        assert response.status_code == 422

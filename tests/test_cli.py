from __future__ import annotations

import json

from backoffice.cli import main

from conftest import JACKET_PRICES, NOTES_PAYLOAD


def _write(path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_cli_timeline(tmp_path, order_payload, capsys):
    order_file = _write(tmp_path / "order.json", {"order": order_payload})
    notes_file = _write(tmp_path / "notes.json", NOTES_PAYLOAD)

    assert main(["timeline", order_file, "--notes", notes_file]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["order_id"] == "order_01"
    assert out["count"] == 6
    assert out["events"][0]["kind"] == "placed"


def test_cli_balance_and_swap_request(tmp_path, order_payload, capsys):
    order_file = _write(tmp_path / "order.json", order_payload)
    selection_file = _write(
        tmp_path / "selection.json",
        {
            "return_items": {"item_mug": {"quantity": 1}},
            "additional_items": [{"variant_id": "var_jacket", "prices": JACKET_PRICES}],
            "shipping": {"option_id": "so_return_std", "quoted_amount": 500},
        },
    )

    assert main(["balance", order_file, selection_file]) == 0
    balance = json.loads(capsys.readouterr().out)
    assert balance["return_total"]["amount"] == 50
    assert balance["settlement"] == "customer_owes"

    assert main(["swap-request", order_file, selection_file]) == 0
    request = json.loads(capsys.readouterr().out)
    assert request == {
        "return_items": [{"item_id": "item_mug", "quantity": 1}],
        "additional_items": [{"variant_id": "var_jacket", "quantity": 1}],
        "return_shipping": {"option_id": "so_return_std", "price": 500},
    }


def test_cli_reports_invalid_selection(tmp_path, order_payload, capsys):
    order_file = _write(tmp_path / "order.json", order_payload)
    selection_file = _write(tmp_path / "selection.json", {"return_items": {"item_hat": {"quantity": 1}}})

    assert main(["balance", order_file, selection_file]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["error"] == "ValidationError"


def test_cli_reports_malformed_selection_file(tmp_path, order_payload, capsys):
    order_file = _write(tmp_path / "order.json", order_payload)
    selection_file = _write(tmp_path / "selection.json", {"return_items": {"item_mug": {"quantity": "many"}}})

    assert main(["swap-request", order_file, selection_file]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["error"] == "ValidationError"
    assert "malformed selection file" in out["detail"]

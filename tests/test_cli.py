import json

from conftest import DEPLOYMENT_ID, DOMAIN_ID, OTHER_DOMAIN_ID, PROJECT_ID, api_error
from edgedeploy import cli


def test_assets_command_prints_discovered_assets(tmp_path, capsys):
    (tmp_path / "main.ts").write_text("main")
    (tmp_path / "styles.css").write_text("body {}")

    exit_code = cli.main(["assets", str(tmp_path), "*.{ts,css}", "--target", "www"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert sorted(output) == ["www/main.ts", "www/styles.css"]
    assert output["www/main.ts"]["kind"] == "file"


def test_assets_command_reports_errors_on_stderr(tmp_path, capsys):
    exit_code = cli.main(["assets", str(tmp_path / "missing"), "*"])

    assert exit_code == 1
    assert "Error: Unable to read assets" in capsys.readouterr().err


def test_deploy_command_writes_state(tmp_path, monkeypatch, fake_client):
    site = tmp_path / "site"
    site.mkdir()
    (site / "main.ts").write_text("hey")
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(
        json.dumps(
            {
                "project_id": PROJECT_ID,
                "entry_point_url": "main.ts",
                "assets": [{"path": str(site), "pattern": "*.ts"}],
                "domain_ids": [DOMAIN_ID],
            }
        )
    )
    output_path = tmp_path / "state.json"
    monkeypatch.setattr(cli, "_build_client", lambda: fake_client)

    exit_code = cli.main(["deploy", str(plan_path), "--output", str(output_path)])

    assert exit_code == 0
    state = json.loads(output_path.read_text())
    assert state["deployment_id"] == DEPLOYMENT_ID
    assert state["status"] == "success"
    assert state["domains"] == [DOMAIN_ID]


def test_deploy_command_keeps_partial_state_on_association_failure(tmp_path, monkeypatch, fake_client, capsys):
    site = tmp_path / "site"
    site.mkdir()
    (site / "main.ts").write_text("hey")
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(
        json.dumps(
            {
                "project_id": PROJECT_ID,
                "entry_point_url": "main.ts",
                "assets": [{"path": str(site), "pattern": "*.ts"}],
                "domain_ids": [DOMAIN_ID, OTHER_DOMAIN_ID],
            }
        )
    )
    output_path = tmp_path / "state.json"
    fake_client.association_errors[DOMAIN_ID] = api_error(409)
    monkeypatch.setattr(cli, "_build_client", lambda: fake_client)

    exit_code = cli.main(["deploy", str(plan_path), "--output", str(output_path)])

    assert exit_code == 1
    assert json.loads(output_path.read_text())["domains"] == [OTHER_DOMAIN_ID]
    assert "Unable to Associate Domains" in capsys.readouterr().err


def test_undeploy_command_releases_domains(tmp_path, monkeypatch, fake_client):
    state_path = tmp_path / "state.json"
    state_path.write_text(
        json.dumps(
            {
                "deployment_id": DEPLOYMENT_ID,
                "project_id": PROJECT_ID,
                "status": "success",
                "domain_ids": [DOMAIN_ID],
            }
        )
    )
    monkeypatch.setattr(cli, "_build_client", lambda: fake_client)

    assert cli.main(["undeploy", str(state_path)]) == 0
    assert fake_client.association_calls == [(DOMAIN_ID, None)]

"""Unit tests for program deployment"""
import json
import subprocess
from unittest.mock import patch

import pytest
from solders.keypair import Keypair

from access_harness.config import DeployOptions
from access_harness.core.deploy import build_deploy_command, deploy_program, read_keypair, read_program_id
from access_harness.errors import DeploymentError


def write_keypair(path, keypair):
    path.write_text(json.dumps(list(bytes(keypair))))
    return path


@pytest.fixture
def program_keypair():
    return Keypair()


@pytest.fixture
def deploy_files(tmp_path, program_keypair):
    so = tmp_path / "access_protocol.so"
    so.write_bytes(b"\x7fELF")
    keyfile = write_keypair(tmp_path / "access_protocol-keypair.json", program_keypair)
    payer = write_keypair(tmp_path / "payer.json", Keypair())
    options = DeployOptions(program_so=so, program_keypair=keyfile, rpc_url="http://localhost:8899")
    return options, payer


def test_read_keypair_round_trips_keygen_format(tmp_path):
    keypair = Keypair()
    path = write_keypair(tmp_path / "id.json", keypair)

    assert read_keypair(path) == keypair
    assert read_program_id(path) == keypair.pubkey()


def test_read_keypair_invalid_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[1, 2, 3]")

    with pytest.raises(DeploymentError):
        read_keypair(path)


def test_command_line(deploy_files):
    options, payer = deploy_files

    cmd = build_deploy_command(payer, options)

    assert cmd[:4] == ["solana", "program", "deploy", str(options.program_so)]
    assert cmd[cmd.index("--program-id") + 1] == str(options.program_keypair)
    assert cmd[cmd.index("-u") + 1] == "http://localhost:8899"
    assert cmd[cmd.index("-k") + 1] == str(payer)
    assert cmd[cmd.index("--commitment") + 1] == "finalized"


def test_deploy_returns_program_id(deploy_files, program_keypair):
    options, payer = deploy_files

    with patch("access_harness.core.deploy.subprocess.check_output", return_value="Program Id: x\n") as run:
        program_id = deploy_program(payer, options)

    assert program_id == program_keypair.pubkey()
    assert run.call_args.args[0] == build_deploy_command(payer, options)


def test_deploy_cli_failure(deploy_files):
    options, payer = deploy_files
    error = subprocess.CalledProcessError(1, "solana", output="Error: insufficient funds")

    with patch("access_harness.core.deploy.subprocess.check_output", side_effect=error):
        with pytest.raises(DeploymentError) as exc_info:
            deploy_program(payer, options)

    assert exc_info.value.output == "Error: insufficient funds"


def test_deploy_missing_binary(deploy_files):
    options, payer = deploy_files
    options.program_so.unlink()

    with patch("access_harness.core.deploy.subprocess.check_output") as run:
        with pytest.raises(DeploymentError):
            deploy_program(payer, options)

    run.assert_not_called()

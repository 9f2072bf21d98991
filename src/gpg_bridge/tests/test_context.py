from src.gpg_bridge.config import Config
from src.gpg_bridge.context import BridgeContext


def test_create_and_close():
    ctx = BridgeContext.create(Config(gpg_path="/opt/custom/gpg"))
    try:
        assert ctx.temp_dir.is_dir()
        assert len(ctx.passcode) == 6 and ctx.passcode.isdigit()
        (ctx.temp_dir / "leftover.txt").write_text("x", encoding="utf-8")
    finally:
        ctx.close()
    assert not ctx.temp_dir.exists()
    # 重复关闭不报错
    ctx.close()


def test_each_context_gets_its_own_temp_dir():
    first = BridgeContext.create(Config())
    second = BridgeContext.create(Config())
    try:
        assert first.temp_dir != second.temp_dir
    finally:
        first.close()
        second.close()

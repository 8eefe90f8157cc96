import pytest

from jukebox.utils.config import load_config


@pytest.fixture
def clean_env(monkeypatch):
    for key in ('DISCORD_TOKEN', 'BOT_ENV', 'BOT_PREFIX', 'DOWNLOAD_DIR', 'FFMPEG_PATH',
                'AUDIO_BITRATE', 'TRANSCODE_TIMEOUT', 'LOG_LEVEL', 'DEBUG'):
        # setenv first so teardown also removes values load_dotenv adds
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


def test_development_config_from_environment(clean_env, tmp_path):
    clean_env.setenv('BOT_ENV', 'development')
    clean_env.setenv('DISCORD_TOKEN', 'token')
    clean_env.setenv('DOWNLOAD_DIR', str(tmp_path))
    clean_env.setenv('TRANSCODE_TIMEOUT', '30')

    config = load_config(env_path=str(tmp_path / '.env'))

    assert config['bot_token'] == 'token'
    assert config['command_prefix'] == '!'
    assert config['download_dir'] == str(tmp_path)
    assert config['transcode_timeout'] == 30
    assert config['audio_bitrate'] == '192k'
    assert config['debug'] is False


def test_env_file_is_loaded(clean_env, tmp_path):
    env_file = tmp_path / '.env'
    env_file.write_text("DISCORD_TOKEN=from-file\nBOT_ENV=development\nBOT_PREFIX=?\n")

    config = load_config(env_path=str(env_file))

    assert config['bot_token'] == 'from-file'
    assert config['command_prefix'] == '?'


def test_production_yaml_overrides_defaults(clean_env, tmp_path):
    clean_env.setenv('DISCORD_TOKEN', 'token')
    yaml_file = tmp_path / 'config.yaml'
    yaml_file.write_text("command_prefix: '$'\ntranscode_timeout: '45'\n")

    config = load_config(env_path=str(tmp_path / '.env'), config_path=str(yaml_file))

    assert config['command_prefix'] == '$'
    assert config['transcode_timeout'] == 45
    assert config['bot_token'] == 'token'


def test_missing_token_is_rejected(clean_env, tmp_path):
    clean_env.setenv('BOT_ENV', 'development')

    with pytest.raises(ValueError):
        load_config(env_path=str(tmp_path / '.env'))

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from buzzboard.config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    origins = flask_app.config.get('CORS_ORIGINS') or '*'
    if origins == ['*']:
        origins = '*'

    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # The game machine owns the live game state for this process
    from buzzboard.broadcast import Broadcaster
    from buzzboard.generation import QuestionGenerator
    from buzzboard.questions import QuestionBankLoader
    from buzzboard.services.game.machine import GameMachine
    from buzzboard.sessions import SessionRegistry

    cfg = flask_app.config
    machine = GameMachine(
        sessions=SessionRegistry(cfg['HOST_PASSWORD'], ttl_sec=cfg.get('SESSION_TTL_SEC', 24 * 60 * 60)),
        loader=cfg.get('QUESTION_LOADER') or QuestionBankLoader(cfg['QUESTIONS_CSV']),
        generator=cfg.get('QUESTION_GENERATOR') or QuestionGenerator.from_config(cfg),
        logger=flask_app.logger,
        rng=cfg.get('GAME_RNG'),
        max_name_length=cfg.get('MAX_NAME_LENGTH', 20),
        min_max_wager=cfg.get('MIN_MAX_WAGER', 1000),
        final_question={
            'text': cfg.get('FINAL_JEOPARDY_TEXT'),
            'category': cfg.get('FINAL_JEOPARDY_CATEGORY'),
        } if cfg.get('FINAL_JEOPARDY_TEXT') else None,
    )
    flask_app.extensions['buzzboard'] = {
        'machine': machine,
        'broadcaster': Broadcaster(socketio, logger=flask_app.logger),
    }

    # Import and register blueprints here
    from buzzboard.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from buzzboard.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from buzzboard.services.game.scheduler import start_session_sweeper
    start_session_sweeper(flask_app)

    @click.command('init-questions')
    @click.option('--path', default=None, help='Where to write the bank (defaults to QUESTIONS_CSV).')
    @click.option('--force', is_flag=True, help='Overwrite an existing file.')
    def init_questions_command(path, force):
        """Writes a starter question bank CSV."""
        from buzzboard.questions import write_default_bank
        target = path or flask_app.config['QUESTIONS_CSV']
        if write_default_bank(target, overwrite=force):
            click.echo(f'Question bank written to {target}')
        else:
            click.echo(f'{target} already exists; use --force to overwrite')

    flask_app.cli.add_command(init_questions_command)

    return flask_app

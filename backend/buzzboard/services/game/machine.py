import logging
import random
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, Type

from buzzboard.commands import (
    CLOSE, EVERYONE, HOST, JOIN, LEAVE, REPLY, Command, Event, RoomChange,
    CreateSession, JoinAsHost, JoinAsContestant, SelectQuestion, BuzzIn,
    DailyDoubleWager, JudgeAnswer, StartFinalJeopardy, FinalJeopardyWager,
    JudgeFinalJeopardy, ResetGame, RegenerateQuestionSet, GenerationStatus,
    Disconnect,
)
from buzzboard.errors import (
    AuthError, AuthorizationError, BuzzboardError, GenerationUnavailable,
    ResourceError, ValidationError,
)
from buzzboard.identity import CONTESTANT_ROLE, HOST_ROLE, IdentityTable
from buzzboard.models import (
    DAILY_DOUBLE, FINAL_JEOPARDY, PLAYING, Board, Contestant, CurrentQuestion,
    GameState, name_key,
)
from .daily_double import assign_daily_double
from .scoring import (
    MIN_MAX_WAGER, apply_judgment, check_wager, max_daily_double_wager,
    max_final_wager,
)

DEFAULT_FINAL_QUESTION = {
    'text': 'Final Jeopardy Question: This programming language was created by Brendan Eich in 1995.',
    'category': 'TECHNOLOGY',
}


class GameMachine:
    """Authoritative owner of the live ``GameState``.

    All mutation goes through :meth:`dispatch` (plus the two completion hooks
    used by background work), each of which holds ``self._lock`` for the whole
    transition. A transition returns the list of events to fan out; it never
    emits anything itself.

    Gated actions from the wrong connection raise ``AuthorizationError``
    internally and are dropped without a reply. Other domain errors become a
    reply event addressed to the offending connection only.
    """

    def __init__(self, sessions, loader, generator=None, logger=None, rng=None,
                 max_name_length=20, min_max_wager=MIN_MAX_WAGER, final_question=None):
        self.sessions = sessions
        self.loader = loader
        self.generator = generator
        self.log = logger or logging.getLogger(__name__)
        self.rng = rng or random.Random()
        self.max_name_length = max_name_length
        self.min_max_wager = min_max_wager
        self.final_question = dict(final_question or DEFAULT_FINAL_QUESTION)

        self.state = GameState()
        self.identity = IdentityTable()
        self.generation_in_progress = False
        # bumped on every buzz so a stale answer timeout can be recognised
        self.buzz_seq = 0
        # room membership changes made by the last dispatched command
        self.room_changes: List[RoomChange] = []
        self.buzz_seq = 0
        self._lock = threading.RLock()
        self._handlers: Dict[Type[Command], Callable] = {
            CreateSession: self._create_session,
            JoinAsHost: self._join_as_host,
            JoinAsContestant: self._join_as_contestant,
            SelectQuestion: self._select_question,
            BuzzIn: self._buzz_in,
            DailyDoubleWager: self._daily_double_wager,
            JudgeAnswer: self._judge_answer,
            StartFinalJeopardy: self._start_final_jeopardy,
            FinalJeopardyWager: self._final_jeopardy_wager,
            JudgeFinalJeopardy: self._judge_final_jeopardy,
            ResetGame: self._reset_game,
            RegenerateQuestionSet: self._regenerate_question_set,
            GenerationStatus: self._generation_status,
            Disconnect: self._disconnect,
        }

    @property
    def ai_enabled(self) -> bool:
        return self.generator is not None

    @property
    def handled_commands(self):
        return frozenset(self._handlers)

    # ---- entry points ----

    def dispatch(self, sid, command: Command) -> List[Event]:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f'No transition for {type(command).__name__}')
        with self._lock:
            self.room_changes = []
            try:
                return handler(sid, command)
            except AuthorizationError as exc:
                self.room_changes = []
                self.log.debug(f"[drop] sid={sid} action={type(command).__name__} reason={exc.message}")
                return []
            except BuzzboardError as exc:
                self.room_changes = []
                self.log.info(f"[reject] sid={sid} action={type(command).__name__} error={exc.message}")
                return [self._reply(sid, exc.event, exc.payload())]

    def dispatch_and_deliver(self, sid, command: Command, broadcaster) -> Tuple[List[Event], int]:
        """Dispatch ``command`` and fan its events out before releasing the lock.

        Events leave in the order their transitions were applied. Returns the events together with
        the buzz sequence number they were produced under.
        """
        with self._lock:
            events = self.dispatch(sid, command)
            broadcaster.apply(self.room_changes)
            broadcaster.deliver(events)
            return events, self.buzz_seq

    def holds_role(self, sid, role) -> bool:
        with self._lock:
            if role == HOST_ROLE:
                return sid is not None and sid == self.state.host_id
            if role == CONTESTANT_ROLE:
                return self.state.live_contestant(sid) is not None
            return False

    def create_session(self, secret) -> str:
        with self._lock:
            session_id = self.sessions.create(secret)
        self.log.info(f"[session-created] session={session_id}")
        return session_id

    def complete_generation(self, sid, board: Optional[Board] = None, error: Optional[str] = None,
                            broadcaster=None) -> List[Event]:
        """Apply the outcome of a regeneration started by ``sid``."""
        with self._lock:
            events = self._apply_generation(sid, board, error)
            if broadcaster is not None:
                broadcaster.deliver(events)
            return events

    def expire_floor(self, buzz_seq: int, broadcaster=None) -> List[Event]:
        """Release the floor if buzz ``buzz_seq`` is still waiting for a judgment."""
        with self._lock:
            events = self._expire_floor(buzz_seq)
            if broadcaster is not None:
                broadcaster.deliver(events)
            return events

    def sweep_sessions(self, now=None) -> int:
        with self._lock:
            removed = self.sessions.sweep_expired(now if now is not None else time.time())
        if removed:
            self.log.info(f"[session-sweep] removed={removed} remaining={len(self.sessions)}")
        return removed

    # ---- background completions ----

    def _apply_generation(self, sid, board, error):
        self.generation_in_progress = False
        if board is None:
            message = error or 'Question generation failed'
            self.log.warning(f"[generate-failed] session={self.state.session_id} error={message}")
            return [self._reply(sid, 'questions-generation-error', {'error': message})]
        self.state.board = board
        self._reset_board_and_scores()
        self.log.info(
            f"[generate-done] session={self.state.session_id} tiers={len(board)} categories={len(board.categories)}"
        )
        return [
            self._reply(sid, 'questions-generated', {
                'status': 'New questions generated successfully!',
                'gameState': self.state.to_dict(),
            }),
            self._everyone('game-reset', self.state.to_dict()),
        ]

    def _expire_floor(self, buzz_seq):
        if not self.state.answering or buzz_seq != self.buzz_seq:
            return []
        holder = self.state.answering_contestant()
        self._release_floor(holder)
        self.log.info(f"[answer-timeout] session={self.state.session_id} contestant={holder.name if holder else None}")
        return [
            self._everyone('answer-timeout', {
                'contestantId': holder.id if holder else None,
                'contestantName': holder.name if holder else None,
            }),
            self._snapshot(),
        ]

    # ---- event helpers ----

    def _everyone(self, name, payload=None) -> Event:
        return Event(name, payload, EVERYONE, self.state.session_id)

    def _to_host(self, name, payload=None) -> Event:
        return Event(name, payload, HOST, self.state.host_id)

    def _reply(self, sid, name, payload=None) -> Event:
        return Event(name, payload, REPLY, sid)

    def _snapshot(self) -> Event:
        return self._everyone('game-state-updated', self.state.to_dict())

    # ---- gates ----

    def _require_host(self, sid):
        if sid is None or sid != self.state.host_id:
            raise AuthorizationError('not the host')

    def _require_contestant(self, sid) -> Contestant:
        contestant = self.state.live_contestant(sid)
        if contestant is None:
            raise AuthorizationError('not a live contestant')
        return contestant

    # ---- shared mutations ----

    def _set_can_buzz(self, value: bool, except_key=None):
        for key, contestant in self.state.contestants_by_name.items():
            contestant.can_buzz = value if key != except_key else not value

    def _release_floor(self, holder: Optional[Contestant]):
        """Hand the floor back without judging; the holder may not buzz again."""
        self.state.release_floor()
        if self.state.current_question is not None:
            self._set_can_buzz(True, except_key=holder.key if holder else None)

    def _release_floor_if_held_by(self, sid) -> bool:
        if not self.state.answering or self.state.answering_contestant_id != sid:
            return False
        self._release_floor(self.state.answering_contestant())
        return True

    def _reset_board_and_scores(self):
        state = self.state
        for contestant in state.contestants_by_name.values():
            contestant.score = 0
            contestant.can_buzz = True
        for _, _, question in state.board.cells():
            question.answered = False
        assign_daily_double(state.board, self.rng)
        state.current_question = None
        state.release_floor()
        state.game_phase = PLAYING
        state.final_jeopardy_question = None
        state.final_jeopardy_wagers = {}

    # ---- transitions ----

    def _create_session(self, sid, command: CreateSession):
        session_id = self.sessions.create(command.secret)
        self.log.info(f"[session-created] session={session_id} sid={sid}")
        return [self._reply(sid, 'session-created', {'sessionId': session_id})]

    def _join_as_host(self, sid, command: JoinAsHost):
        if not command.session_id or not command.secret:
            raise AuthError('Session ID and password required')
        session = self.sessions.lookup(command.session_id)
        if not session or not session.check_secret(command.secret):
            raise AuthError('Invalid session ID or password')

        reconnect = self.state.session_id == command.session_id and len(self.state.board) > 0
        if reconnect:
            self._release_floor_if_held_by(sid)
            previous_host = self.identity.bind_host(self.state, sid)
            if previous_host:
                self.room_changes.append(RoomChange(LEAVE, command.session_id, previous_host))
        else:
            try:
                board = self.loader.load()
            except ResourceError as exc:
                self.log.error(f"[host-join] session={command.session_id} question bank error: {exc.message}")
                raise AuthError('Error loading game questions')
            # every connection bound to the old game is now unbound
            for stale in {self.state.session_id, command.session_id} - {None}:
                self.room_changes.append(RoomChange(CLOSE, stale))
            self.state = GameState(session_id=command.session_id, board=board)
            self.identity.clear()
            self.identity.bind_host(self.state, sid)
            assign_daily_double(self.state.board, self.rng)
            self.buzz_seq = 0

        self.room_changes.append(RoomChange(JOIN, command.session_id, sid))
        self.log.info(f"[host-join] session={command.session_id} sid={sid} reconnect={reconnect}")
        return [self._reply(sid, 'host-joined', {
            'contestants': self.state.contestants_dict(),
            'gameState': self.state.to_dict(),
            'sessionId': command.session_id,
            'aiEnabled': self.ai_enabled,
        })]

    def _join_as_contestant(self, sid, command: JoinAsContestant):
        if not command.session_id:
            raise AuthError('Session ID required')
        name = command.name.strip()
        if not name:
            raise AuthError('Contestant name required')
        if len(name) > self.max_name_length:
            raise AuthError(f'Name must be {self.max_name_length} characters or less')
        if not self.sessions.lookup(command.session_id):
            raise AuthError('Invalid session ID')
        if self.state.session_id != command.session_id:
            raise AuthError('Game session not active')

        state = self.state
        events = []
        key = name_key(name)
        known = state.contestants_by_name.get(key)
        previous_id = known.id if known else None
        replaces_live = known is not None and previous_id != sid and state.live_contestant(previous_id) is known
        binding = self.identity.get(sid)
        if binding and (binding.role == HOST_ROLE or binding.name_key != key):
            # this connection is switching identity; a buzz it held is void
            if self._release_floor_if_held_by(sid):
                events.append(self._snapshot())

        contestant, reconnecting = self.identity.bind_contestant(state, sid, name, command.address)
        if reconnecting and previous_id != sid and state.answering_contestant_id == previous_id and previous_id:
            state.answering_contestant_id = sid
        elif not reconnecting and state.answering:
            # nobody may buzz while a judgment is pending
            contestant.can_buzz = False
        self.room_changes.append(RoomChange(JOIN, state.session_id, sid))
        if replaces_live:
            self.room_changes.append(RoomChange(LEAVE, state.session_id, previous_id))

        self.log.info(
            f"[contestant-join] session={command.session_id} sid={sid} name={contestant.name} "
            f"reconnect={reconnecting} score={contestant.score}"
        )
        return [
            self._reply(sid, 'contestant-joined', {
                'id': sid,
                'gameState': state.to_dict(),
                'isReconnecting': reconnecting,
            }),
            self._to_host('contestant-list-updated', state.contestants_dict()),
        ] + events

    def _select_question(self, sid, command: SelectQuestion):
        self._require_host(sid)
        state = self.state
        if not state.board.has_cell(command.row, command.col):
            raise ValidationError(f'No question at row {command.row}, column {command.col}')
        question = state.board.cell(command.row, command.col)
        if question.answered:
            return []

        state.current_question = CurrentQuestion.from_cell(state.board, command.row, command.col)
        state.release_floor()
        self._set_can_buzz(True)
        state.game_phase = DAILY_DOUBLE if question.is_daily_double else PLAYING

        self.log.info(
            f"[select] session={state.session_id} row={command.row} col={command.col} "
            f"value={state.current_question.value} phase={state.game_phase}"
        )
        return [
            self._everyone('question-selected', state.current_question.to_dict()),
            self._snapshot(),
        ]

    def _buzz_in(self, sid, command: BuzzIn):
        contestant = self._require_contestant(sid)
        state = self.state
        if state.current_question is None or state.answering or not contestant.can_buzz:
            return []

        state.answering = True
        state.answering_contestant_id = sid
        self._set_can_buzz(False)
        self.buzz_seq += 1

        self.log.info(f"[buzz] session={state.session_id} contestant={contestant.name}")
        return [
            self._everyone('contestant-buzzed', {'contestantId': sid, 'contestantName': contestant.name}),
            self._snapshot(),
        ]

    def _daily_double_wager(self, sid, command: DailyDoubleWager):
        state = self.state
        if sid is None or sid != state.answering_contestant_id:
            raise AuthorizationError('not holding the floor')
        if state.game_phase != DAILY_DOUBLE or state.current_question is None:
            return []
        contestant = self._require_contestant(sid)
        check_wager(command.wager, max_daily_double_wager(contestant.score, self.min_max_wager))

        state.current_question.wager = command.wager
        state.game_phase = PLAYING

        self.log.info(f"[dd-wager] session={state.session_id} contestant={contestant.name} wager={command.wager}")
        return [
            self._everyone('daily-double-wager-set', {'contestant': contestant.name, 'wager': command.wager}),
            self._snapshot(),
        ]

    def _judge_answer(self, sid, command: JudgeAnswer):
        self._require_host(sid)
        state = self.state
        contestant = state.answering_contestant()
        if contestant is None or state.current_question is None:
            return []

        current = state.current_question
        new_score = apply_judgment(contestant, current.stake, command.correct)
        if command.correct:
            state.board.cell(current.row, current.col).answered = True
            state.current_question = None
        else:
            self._set_can_buzz(True, except_key=contestant.key)
        state.release_floor()
        state.game_phase = PLAYING

        self.log.info(
            f"[judge] session={state.session_id} contestant={contestant.name} "
            f"correct={command.correct} stake={current.stake} score={new_score}"
        )
        return [
            self._everyone('answer-judged', {
                'correct': command.correct,
                'contestant': contestant.to_dict(),
                'newScore': new_score,
            }),
            self._everyone('contestant-list-updated', state.contestants_dict()),
            self._snapshot(),
        ]

    def _start_final_jeopardy(self, sid, command: StartFinalJeopardy):
        self._require_host(sid)
        state = self.state
        state.current_question = None
        state.release_floor()
        state.final_jeopardy_wagers = {}
        state.game_phase = FINAL_JEOPARDY
        state.final_jeopardy_question = dict(self.final_question)

        self.log.info(f"[final-start] session={state.session_id}")
        return [self._everyone('final-jeopardy-started', state.final_jeopardy_question)]

    def _final_jeopardy_wager(self, sid, command: FinalJeopardyWager):
        contestant = self._require_contestant(sid)
        state = self.state
        if state.game_phase != FINAL_JEOPARDY:
            return []
        check_wager(command.wager, max_final_wager(contestant.score, self.min_max_wager))
        state.final_jeopardy_wagers[contestant.key] = command.wager

        self.log.info(f"[final-wager] session={state.session_id} contestant={contestant.name} wager={command.wager}")
        return [self._to_host('final-jeopardy-wager-received', {
            'contestant': contestant.name,
            'wager': command.wager,
        })]

    def _find_contestant(self, contestant_id) -> Optional[Contestant]:
        contestant = self.state.live_contestant(contestant_id)
        if contestant is not None:
            return contestant
        # a contestant judged after dropping out is still known by their last sid
        for durable in self.state.contestants_by_name.values():
            if durable.id == contestant_id:
                return durable
        return None

    def _judge_final_jeopardy(self, sid, command: JudgeFinalJeopardy):
        self._require_host(sid)
        state = self.state
        for judgment in command.answers:
            contestant = self._find_contestant(judgment.contestant_id)
            if contestant is None:
                self.log.warning(f"[final-judge] session={state.session_id} unknown contestant={judgment.contestant_id}")
                continue
            # each wager counts once, so a repeated judgment is a no-op
            wager = state.final_jeopardy_wagers.pop(contestant.key, 0)
            apply_judgment(contestant, wager, judgment.correct)
            self.log.info(
                f"[final-judge] session={state.session_id} contestant={contestant.name} "
                f"correct={judgment.correct} wager={wager} score={contestant.score}"
            )
        return [self._everyone('final-jeopardy-results', {'contestants': state.contestants_dict()})]

    def _reset_game(self, sid, command: ResetGame):
        self._require_host(sid)
        self._reset_board_and_scores()
        self.log.info(f"[reset] session={self.state.session_id} daily_double={self.state.board.daily_doubles()}")
        return [self._everyone('game-reset', self.state.to_dict())]

    def _regenerate_question_set(self, sid, command: RegenerateQuestionSet):
        self._require_host(sid)
        if self.generator is None:
            raise GenerationUnavailable('OpenAI API key not configured')
        if self.generation_in_progress:
            raise GenerationUnavailable('Question generation already in progress')
        self.generation_in_progress = True
        self.log.info(f"[generate-start] session={self.state.session_id} sid={sid}")
        return [self._reply(sid, 'questions-generating', {'status': 'Generating new questions...'})]

    def _generation_status(self, sid, command: GenerationStatus):
        self._require_host(sid)
        return [self._reply(sid, 'generation-status', {
            'inProgress': self.generation_in_progress,
            'aiEnabled': self.ai_enabled,
        })]

    def _disconnect(self, sid, command: Disconnect):
        state = self.state
        binding = self.identity.get(sid)
        if binding is None:
            return []

        if binding.role == HOST_ROLE:
            self.identity.release(state, sid)
            self.log.info(f"[host-disconnect] session={state.session_id} sid={sid}")
            return [self._everyone('host-disconnected')]

        events = []
        if binding.role == CONTESTANT_ROLE:
            contestant = state.live_contestant(sid)
            held_floor = self._release_floor_if_held_by(sid)
            self.identity.release(state, sid)
            self.log.info(
                f"[contestant-disconnect] session={state.session_id} name={contestant.name if contestant else None} "
                f"released_floor={held_floor}"
            )
            events.append(self._everyone('contestant-list-updated', state.contestants_dict()))
            if held_floor:
                events.append(self._snapshot())
        return events

# services/agenda_watch.py
"""
Estado vivo do painel da agenda (um profissional).

Dono de todas as escutas abertas no store:
  - documento do profissional → settings de horário (1 escuta)
  - dia selecionado → citas do dia + bloqueios do dia (2 escutas)
  - mês exibido     → citas do mês + bloqueios do mês (2 escutas, indicadores)

Trocar de dia/mês cancela as escutas antigas ANTES de abrir as novas;
close() cancela tudo. O cálculo continua nas funções puras de domain/.

Cada troca incrementa uma geração; snapshot que chega de uma escuta já
cancelada (Firestore entrega em thread própria) é descartado.
"""

from __future__ import annotations
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from dateutil.relativedelta import relativedelta

from domain.availability import month_indicators
from domain.models import Appointment, Block, Professional
from services import agenda_repo
from services.store import Store, Subscription

log = logging.getLogger(__name__)


class AgendaViewState:
    def __init__(
        self,
        store: Store,
        pro_id: str,
        on_change: Optional[Callable[["AgendaViewState"], None]] = None,
    ):
        self.store = store
        self.pro_id = pro_id
        self.on_change = on_change
        self.config = agenda_repo.load_settings(store, pro_id)

        self.selected_date: Optional[str] = None
        self.month: Optional[str] = None
        self.blocks: List[Block] = []
        self.appointments: List[Appointment] = []
        self.month_blocks: List[Block] = []
        self.month_appointments: List[Appointment] = []

        self._day_subs: List[Subscription] = []
        self._month_subs: List[Subscription] = []
        self._settings_sub: Optional[Subscription] = None
        self._day_gen = 0
        self._month_gen = 0
        self._lock = threading.RLock()
        self._closed = False

    # ---------------------------------------------------------------
    # Escutas
    # ---------------------------------------------------------------

    @staticmethod
    def _dispose(subs: List[Subscription]) -> None:
        while subs:
            subs.pop().unsubscribe()

    def _notify(self) -> None:
        if self.on_change is None or self._closed:
            return
        try:
            self.on_change(self)
        except Exception:
            log.exception("[agenda_watch] on_change falhou pro=%s", self.pro_id)

    def _stale(self, kind: str, gen: int, current: int) -> bool:
        if self._closed or gen != current:
            log.debug("[agenda_watch] snapshot %s descartado pro=%s gen=%s atual=%s",
                      kind, self.pro_id, gen, current)
            return True
        return False

    def _on_settings(self, docs) -> None:
        with self._lock:
            if self._closed or not docs:
                return
            self.config = Professional.from_doc(docs[0].id, docs[0].data).settings
        self._notify()

    def _on_day_appointments(self, gen: int, docs) -> None:
        with self._lock:
            if self._stale("dia", gen, self._day_gen):
                return
            self.appointments = [Appointment.from_doc(d.id, d.data) for d in docs]
        self._notify()

    def _on_day_blocks(self, gen: int, docs) -> None:
        with self._lock:
            if self._stale("dia", gen, self._day_gen):
                return
            self.blocks = [Block.from_doc(d.id, d.data) for d in docs]
        self._notify()

    def _on_month_appointments(self, gen: int, docs) -> None:
        with self._lock:
            if self._stale("mês", gen, self._month_gen):
                return
            self.month_appointments = [Appointment.from_doc(d.id, d.data) for d in docs]
        self._notify()

    def _on_month_blocks(self, gen: int, docs) -> None:
        with self._lock:
            if self._stale("mês", gen, self._month_gen):
                return
            self.month_blocks = [Block.from_doc(d.id, d.data) for d in docs]
        self._notify()

    def _watch_settings(self) -> None:
        if self._settings_sub is not None:
            return
        # filtro pelo slug: o contrato do store só escuta consultas
        self._settings_sub = self.store.watch(
            agenda_repo.PROS_COL, [("slug", "==", self.pro_id)], self._on_settings)

    def select_date(self, date_str: str) -> None:
        date_str = agenda_repo.require_date(date_str)
        with self._lock:
            self._dispose(self._day_subs)
            self._day_gen += 1
            gen = self._day_gen
            self.selected_date = date_str
            self.appointments, self.blocks = [], []
            self._watch_settings()
            flt = [("date", "==", date_str)]
            self._day_subs.append(self.store.watch(
                agenda_repo.appointments_col(self.pro_id), flt, partial(self._on_day_appointments, gen)))
            self._day_subs.append(self.store.watch(
                agenda_repo.blocks_col(self.pro_id), flt, partial(self._on_day_blocks, gen)))
            if self.month != date_str[:7]:
                self.select_month(date_str[:7])
        log.debug("[agenda_watch] dia %s pro=%s", date_str, self.pro_id)

    def select_month(self, month: str) -> None:
        start, end = agenda_repo.month_range(month)
        with self._lock:
            self._dispose(self._month_subs)
            self._month_gen += 1
            gen = self._month_gen
            self.month = start[:7]
            self.month_appointments, self.month_blocks = [], []
            self._watch_settings()
            rng = [("date", ">=", start), ("date", "<=", end)]
            self._month_subs.append(self.store.watch(
                agenda_repo.appointments_col(self.pro_id), rng, partial(self._on_month_appointments, gen)))
            self._month_subs.append(self.store.watch(
                agenda_repo.blocks_col(self.pro_id), rng, partial(self._on_month_blocks, gen)))

    def change_month(self, offset: int) -> str:
        base = datetime.strptime((self.month or agenda_repo.today_str()[:7]) + "-01", "%Y-%m-%d")
        month = (base + relativedelta(months=offset)).strftime("%Y-%m")
        self.select_month(month)
        return month

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._dispose(self._day_subs)
            self._dispose(self._month_subs)
            if self._settings_sub is not None:
                self._settings_sub.unsubscribe()
                self._settings_sub = None

    def __enter__(self) -> "AgendaViewState":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------------------------------------------------------------
    # Leitura
    # ---------------------------------------------------------------

    @property
    def subscription_count(self) -> int:
        return len(self._day_subs) + len(self._month_subs) + int(self._settings_sub is not None)

    @property
    def appointment_days(self) -> Dict[str, bool]:
        return month_indicators(self.month_appointments, self.month_blocks)["appointmentDays"]

    @property
    def blocked_days(self) -> Dict[str, bool]:
        return month_indicators(self.month_appointments, self.month_blocks)["blockedDays"]

    def day_payload(self) -> Dict[str, Any]:
        with self._lock:
            if self.selected_date is None:
                return {}
            return agenda_repo.build_day_payload(
                self.selected_date, self.config, list(self.blocks), list(self.appointments))

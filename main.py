import asyncio
import logging

from api.services import build_services
from config.api import ApiConfig
from config.postgres import PostgresConfig
from persistence.crypto import TokenCipher
from persistence.session_store import PostgresStorage, SessionStore
from registration.notifications import LoggingNotifier
from registration.roles import Role
from registration.submission import SubmissionAdapter
from registration.wizard import SignupWizard


def build_session_store() -> SessionStore:
    pg = PostgresConfig.from_env_optional()
    if pg is None:
        return SessionStore()
    durable = PostgresStorage(pg.connect(), TokenCipher.from_env(), table=pg.token_table)
    durable.setup()
    return SessionStore(durable=durable)


async def run_demo(config: ApiConfig) -> None:
    store = build_session_store()
    services = build_services(config, store)
    adapter = SubmissionAdapter(services, encoding=config.document_encoding)
    wizard = SignupWizard(
        adapter,
        notifier=LoggingNotifier(delay=config.redirect_delay),
        role=Role.DOCTOR,
        store=store,
    )

    steps = [
        [("firstName", "J"), ("email", "jo@example.com"), ("phone", "98-76 543a210")],
        [("firstName", "Jo"), ("specialization", "Cardiology"), ("gender", "female")],
        [("licenseNumber", " MCI-1234 "), ("consultationFee", "500.50")],
    ]

    for i, patch in enumerate(steps, 1):
        for name, value in patch:
            wizard.change(name, value)
        moved = wizard.advance()
        print(f"\nPATCH #{i}: step {wizard.current_step}/{wizard.total_steps} (moved={moved})")

    wizard.key_press("languages", "English", "Enter")
    wizard.change("termsAccepted", input_type="checkbox", checked=True)

    ok = await wizard.submit()
    print("submitted:", ok, "mode:", wizard.mode)
    print("draft keys:", sorted(wizard.draft))


def main():
    config = ApiConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_demo(config))


if __name__ == "__main__":
    main()

from dotenv import load_dotenv
import os
# Always use the absolute path to your .env in the current project directory
load_dotenv(dotenv_path=os.path.join(os.getcwd(), ".env"))
import logging
import streamlit as st

from letterdash.engine import RoundEngine
from letterdash.monitoring import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="LetterDash - Category Word Game",
    page_icon="🔤",
    layout="centered",
    initial_sidebar_state="expanded",
    menu_items={
        'About': "# LetterDash\nName as many words as you can for a category and a starting letter!"
    }
)


@st.cache_resource
def get_engine() -> RoundEngine:
    engine = RoundEngine.from_env()
    engine.init()
    return engine


def format_duration(seconds) -> str:
    seconds = int(seconds or 0)
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}m {seconds}s" if minutes else f"{seconds}s"


def display_degradation_banners(engine: RoundEngine):
    """Show one warning per active degradation, plus a retry button."""
    status = engine.degradation.get_status()
    for message in status['user_messages']:
        st.warning(message)
    if status['can_recover']:
        if st.button("Try to restore full functionality"):
            results = engine.attempt_recovery()
            recovered = [name for name, ok in results.items() if ok]
            if recovered:
                st.success(f"Recovered: {', '.join(recovered)}")
            else:
                st.info("Still running in reduced mode")
            st.rerun()


def display_player_stats(engine: RoundEngine, nickname: str):
    """Display player statistics in the sidebar."""
    if not nickname:
        return
    st.sidebar.markdown("---")
    st.sidebar.header("📊 Your Stats")

    player_stats = engine.player_stats.get_player_stats(nickname)
    if not player_stats:
        st.sidebar.markdown("No rounds played yet.")
        return

    col1, col2 = st.sidebar.columns(2)
    with col1:
        st.metric("Total Rounds", player_stats["total_rounds"])
        st.metric("Best Score", int(player_stats["best_score"]))
    with col2:
        st.metric("Avg Score", round(player_stats["avg_score"], 1))
        st.metric("Total Time", format_duration(player_stats["total_time"]))

    st.sidebar.markdown(f"**Favorite Category:** {player_stats['favorite_category']}")
    st.sidebar.markdown(f"**Next Difficulty:** {player_stats['recommended_difficulty']}")

    df = engine.player_stats.performance_by_difficulty(nickname)
    if not df.empty:
        st.sidebar.markdown("**By Difficulty**")
        st.sidebar.dataframe(df, hide_index=True)

    if player_stats["recent_rounds"]:
        st.sidebar.markdown("**Recent Rounds**")
        for r in player_stats["recent_rounds"]:
            st.sidebar.markdown(
                f"- {r['category_id']} / {r['letter']}: "
                f"{r['words_found']}/{r['target_word_count']} words, score {r['score']}"
            )


def display_round(engine: RoundEngine, nickname: str):
    combination = st.session_state.get('combination')
    if combination is None:
        return

    st.subheader(f"{combination.category.name} starting with “{combination.letter}”")
    col1, col2, col3 = st.columns(3)
    col1.metric("Time", format_duration(combination.round_config.duration))
    col2.metric("Target", combination.round_config.target_word_count)
    col3.metric("Difficulty", combination.difficulty)
    if combination.is_fallback:
        st.caption("Basic round: the full round generator is unavailable right now.")

    with st.form("result_form", clear_on_submit=True):
        words_found = st.number_input("Words found", min_value=0, step=1)
        score = st.number_input("Score", min_value=0, step=1)
        submitted = st.form_submit_button("Record result")
    if submitted:
        if engine.record_result(nickname, combination, int(words_found), score=score,
                                round_type=st.session_state.get('round_type', 'default')):
            st.success("Result recorded")
            st.session_state['combination'] = None
            st.rerun()
        else:
            st.error("Enter a nickname in the sidebar to keep statistics.")


def main():
    engine = get_engine()

    st.title("🔤 LetterDash")
    display_degradation_banners(engine)

    nickname = st.sidebar.text_input("Nickname", value=st.session_state.get('nickname', ''))
    st.session_state['nickname'] = nickname.strip()
    round_type = st.sidebar.selectbox("Round type", list(engine.generator.get_round_configurations()))
    adaptive = st.sidebar.checkbox("Adapt difficulty to my results", value=True)

    if st.button("New round", type="primary"):
        st.session_state['round_type'] = round_type
        st.session_state['combination'] = engine.next_round(
            round_type,
            adaptive=adaptive and bool(st.session_state['nickname']),
            player=st.session_state['nickname'] or None,
        )
        logger.info(f"New {round_type} round for {st.session_state['nickname'] or 'guest'}")

    display_round(engine, st.session_state['nickname'])
    display_player_stats(engine, st.session_state['nickname'])

    with st.expander("Engine status"):
        st.json(engine.get_status())


if __name__ == "__main__":
    main()

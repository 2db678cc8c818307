import streamlit as st
import requests
import json
import os
import pandas as pd

from reports import format_currency

# Configure Streamlit page
st.set_page_config(
    page_title="DamFair - Expense Splitter",
    page_icon="🦫",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS for better styling
st.markdown("""
<style>
    .main-header {
        font-size: 3rem;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        text-align: center;
        color: #6b7280;
        margin-bottom: 2rem;
    }
    .error-box {
        padding: 1rem;
        border-radius: 0.5rem;
        background-color: #f8d7da;
        border: 1px solid #f5c6cb;
        color: #721c24;
    }
</style>
""", unsafe_allow_html=True)

# API Configuration
API_BASE_URL = os.getenv("DAMFAIR_API_URL", "http://localhost:8000")

def check_api_connection():
    """Check if the FastAPI server is running"""
    try:
        response = requests.get(f"{API_BASE_URL}/")
        return response.status_code == 200
    except requests.RequestException:
        return False

def api_get(path, default):
    try:
        response = requests.get(f"{API_BASE_URL}{path}")
        if response.status_code == 200:
            return response.json()
        return default
    except requests.RequestException:
        return default

def api_call(method, path, payload=None):
    """Send a request and return (body, success)"""
    try:
        response = requests.request(method, f"{API_BASE_URL}{path}", json=payload)
        return response.json(), response.status_code == 200
    except requests.RequestException as e:
        return {"detail": str(e)}, False

def show_errors(result):
    detail = result.get("detail", "Unknown error")
    if isinstance(detail, list):
        for message in detail:
            st.error(message if isinstance(message, str) else message.get("msg", str(message)))
    else:
        st.error(detail)

# Main App
def main():
    st.markdown('<h1 class="main-header">🦫 DamFair</h1>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Fair expense splitting, no drama</p>', unsafe_allow_html=True)

    # Check API connection
    if not check_api_connection():
        st.markdown(
            '<div class="error-box">❌ <strong>API Connection Error:</strong> '
            'FastAPI server is not running. Please start the server with: <code>python main.py</code></div>',
            unsafe_allow_html=True
        )
        st.stop()

    participants = api_get("/participants/", [])
    expenses = api_get("/expenses/", [])

    participants_sidebar(participants)

    col1, col2 = st.columns([1, 1])
    with col1:
        expense_form(participants)
        expense_list(expenses)
    with col2:
        spending_chart(participants, expenses)
        debt_calculator(participants, expenses)

    export_options(expenses)

def participants_sidebar(participants):
    st.sidebar.header("👥 Participants")

    with st.sidebar.form("add_participant_form", clear_on_submit=True):
        new_name = st.text_input("Enter a name (e.g., Sam)")
        if st.form_submit_button("Add"):
            result, success = api_call("POST", "/participants/", {"name": new_name})
            if success:
                st.rerun()
            else:
                show_errors(result)

    if participants:
        for participant in participants:
            col1, col2 = st.sidebar.columns([3, 1])
            col1.write(f"👤 {participant['name']}")
            if col2.button("Remove", key=f"remove_{participant['id']}"):
                api_call("DELETE", f"/participants/{participant['id']}")
                st.rerun()
    else:
        st.sidebar.info("No participants yet. Add someone above!")

    st.sidebar.divider()
    if st.sidebar.button("🗑️ Reset All", use_container_width=True):
        st.session_state.confirm_reset = True
    if st.session_state.get("confirm_reset"):
        st.sidebar.warning("This will clear all participants and expenses.")
        if st.sidebar.button("Yes, reset everything"):
            api_call("DELETE", "/reset")
            st.session_state.confirm_reset = False
            st.rerun()

def expense_form(participants):
    st.header("💸 Add Expense")

    if not participants:
        st.info("Add participants first to record expenses.")
        return

    names = [p["name"] for p in participants]
    with st.form("add_expense_form", clear_on_submit=True):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        payer = st.selectbox("💳 Who paid?", options=names)
        involved = st.multiselect("👥 Split between", options=names, default=names)

        if st.form_submit_button("Add Expense", type="primary"):
            payload = {
                "description": description,
                "amount": amount,
                "payer": payer,
                "involved": involved
            }
            result, success = api_call("POST", "/expenses/", payload)
            if success:
                st.rerun()
            else:
                show_errors(result)

def expense_list(expenses):
    st.subheader("📋 Expenses")

    if not expenses:
        st.info("No expenses recorded yet.")
        return

    for expense in sorted(expenses, key=lambda e: e["date"], reverse=True):
        col1, col2 = st.columns([4, 1])
        col1.markdown(
            f"**{expense['description']}** {format_currency(expense['amount'])}  \n"
            f"Paid by {expense['payer']}, split between {', '.join(expense['involved'])} "
            f"({format_currency(expense['amount'] / len(expense['involved']))} each)  \n"
            f"{expense['date'].split('T')[0]}"
        )
        if col2.button("Delete", key=f"delete_{expense['id']}"):
            api_call("DELETE", f"/expenses/{expense['id']}")
            st.rerun()

def spending_chart(participants, expenses):
    st.header("📊 Spending Overview")

    if not participants or not expenses:
        st.info("Add participants and expenses to see the spending chart.")
        return

    stats = api_get("/stats", [])
    if not stats:
        return

    df = pd.DataFrame(stats).rename(columns={
        "name": "Name",
        "total_paid": "Total Paid",
        "total_owed": "Total Owed",
        "net_balance": "Net Balance"
    })
    st.bar_chart(df.set_index("Name")[["Total Paid", "Total Owed"]])
    st.dataframe(df, use_container_width=True, hide_index=True)

def debt_calculator(participants, expenses):
    st.header("🧮 Debt Calculator")

    if not participants:
        st.info("Add participants first to see debt calculations.")
        return
    if not expenses:
        st.info("Add some expenses first to see debt calculations.")
        return

    result, success = api_call("GET", "/settlements")
    if not success:
        show_errors(result)
        return

    st.subheader("Individual Balances")
    st.caption("Shows how much each person is ahead (+) or behind (-) in the group's total expenses.")
    for balance in result["balances"]:
        amount = balance["amount"]
        sign = "+" if amount > 0 else ""
        st.write(f"**{balance['name']}**: {sign}{format_currency(amount)}")

    st.subheader("Settlement Plan")
    settlements = result["optimal_settlements"]
    if not settlements:
        st.success("All debts are already settled! 🎉")
        return

    for settlement in settlements:
        st.write(f"**{settlement['from']}** → **{settlement['to']}**: {format_currency(settlement['amount'])}")

def export_options(expenses):
    st.header("📤 Export Options")

    if not expenses:
        st.info("Add some expenses to export a report.")
        return

    col1, col2, col3, col4, col5 = st.columns(5)
    report = api_get("/report", None)
    if report:
        col1.download_button(
            "Download JSON", data=json.dumps(report, indent=2),
            file_name="damfair-report.json", mime="application/json"
        )

    exports = [
        (col2, "/export/csv", "Download CSV", "damfair-report.csv", "text/csv"),
        (col3, "/export/text", "Download Text", "damfair-report.txt", "text/plain"),
        (col4, "/export/pdf", "Download PDF", "damfair-report.pdf", "application/pdf"),
        (col5, "/export/image", "Download Image", "damfair-report.png", "image/png"),
    ]
    for column, path, label, file_name, mime in exports:
        try:
            response = requests.get(f"{API_BASE_URL}{path}")
        except requests.RequestException as e:
            st.error(f"Error generating exports: {e}")
            return
        if response.status_code == 200:
            column.download_button(label, data=response.content, file_name=file_name, mime=mime)

if __name__ == "__main__":
    main()

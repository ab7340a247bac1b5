import PyInstaller.__main__


def main() -> None:
    PyInstaller.__main__.run(["--onefile", "sems_cli/main.py", "--name", "sems"])


if __name__ == "__main__":
    main()
